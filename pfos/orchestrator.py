"""
Main Orchestrator for PFOS Core

Ties the components of one application instance together:

    store  <- repository, settings manager, query executor
    bus    <- repository, settings manager (publish), the UI (subscribe)

and defines the read flow a month dashboard runs after every change:

    list_by_month(month) + list_by_month(previous) -> aggregate -> overview

Several instances may run against the same database (one per window);
each gets its own FinanceCore from create_app_components().
"""

from typing import Any, Callable, Optional
from uuid import uuid4

from pfos.audit import AuditLogger, configure_logging
from pfos.config import Settings, get_settings
from pfos.models.reports import MonthOverview
from pfos.models.transaction import Transaction
from pfos.queries import (
    QueryExecutor,
    category_totals,
    pct_change,
    prev_month,
    summarize,
    weekly_series,
)
from pfos.services.profile_settings import SettingsManager
from pfos.services.storage import RecordStoreInterface, SQLiteRecordStore
from pfos.services.sync import BroadcastChannel, ChangeBus, ChangeMarker
from pfos.services.transactions import TransactionRepository


class FinanceCore:
    """
    One instance's view of the shared data.

    Exposes the repository, settings and query surfaces directly, plus
    the composed month overview read.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        bus: ChangeBus,
        audit_logger: Optional[AuditLogger] = None,
        default_profile: str = "default",
        instance_id: Optional[str] = None,
    ):
        self.instance_id = instance_id or uuid4().hex
        self.default_profile = default_profile
        self.store = store
        self.bus = bus

        audit_logger = audit_logger or AuditLogger(self.instance_id)
        self.transactions = TransactionRepository(store, bus, audit_logger)
        self.settings = SettingsManager(store, bus, audit_logger)
        self.queries = QueryExecutor(store, audit_logger)

    async def open(self) -> None:
        """Open the store eagerly so an unavailable store fails at startup."""
        await self.store.open()

    async def list_by_month(
        self,
        year_month: str,
        profile: Optional[str] = None,
    ) -> list[Transaction]:
        return await self.queries.list_by_month(profile or self.default_profile, year_month)

    async def month_overview(
        self,
        year_month: str,
        profile: Optional[str] = None,
        top_categories: int = 6,
    ) -> MonthOverview:
        """
        Aggregate one month and compare it with the month before.

        Raises:
            ValueError: If `year_month` is not YYYY-MM
            StorageUnavailableError: If the store cannot be opened
        """
        profile = profile or self.default_profile
        previous = prev_month(year_month)

        records = await self.queries.list_by_month(profile, year_month)
        previous_records = await self.queries.list_by_month(profile, previous)

        summary = summarize(records)
        previous_summary = summarize(previous_records)

        return MonthOverview(
            profile=profile,
            month=year_month,
            previous_month=previous,
            record_count=len(records),
            summary=summary,
            previous_summary=previous_summary,
            net_change_pct=pct_change(summary.net, previous_summary.net),
            expense_change_pct=pct_change(summary.expense, previous_summary.expense),
            top_categories=category_totals(records, limit=top_categories),
            weekly=weekly_series(records, year_month),
        )

    def on_change(self, handler: Callable[..., Any]) -> Callable[[], None]:
        """Subscribe to changes made by other instances."""
        return self.bus.subscribe(handler)

    async def close(self) -> None:
        await self.bus.close()
        await self.store.close()


def create_app_components(
    settings: Optional[Settings] = None,
    configure_logs: bool = True,
) -> FinanceCore:
    """
    Factory function to create one application instance.

    Args:
        settings: Configuration to use; the cached environment settings
                  when omitted.
        configure_logs: Whether to (re)configure structlog from settings.

    Returns:
        A FinanceCore whose store is not yet opened
    """
    settings = settings or get_settings()
    storage_settings = settings.storage
    sync_settings = settings.sync
    app_settings = settings.app

    if configure_logs:
        configure_logging(app_settings.log_level, app_settings.log_json)

    instance_id = uuid4().hex
    audit_logger = AuditLogger(instance_id)

    store = SQLiteRecordStore(
        storage_settings.database_path,
        busy_timeout_seconds=storage_settings.busy_timeout_seconds,
        audit_logger=audit_logger,
    )

    channel = None
    if sync_settings.broadcast_enabled:
        channel = BroadcastChannel(sync_settings.channel_name)
    marker = ChangeMarker(
        sync_settings.resolve_marker_path(storage_settings.database_path),
        origin=instance_id,
    )
    bus = ChangeBus(
        channel=channel,
        marker=marker,
        poll_interval=sync_settings.poll_interval_seconds,
        audit_logger=audit_logger,
    )

    return FinanceCore(
        store=store,
        bus=bus,
        audit_logger=audit_logger,
        default_profile=app_settings.default_profile,
        instance_id=instance_id,
    )
