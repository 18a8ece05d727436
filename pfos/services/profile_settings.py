"""
Settings Manager

Reads and replaces the per-profile settings document stored in the meta
collection under `settings:{profile}`.

A profile with no document gets the defaults, persisted on first read.
A stored document is returned exactly as stored, even if it predates
fields that the defaults now include.
"""

from collections.abc import Mapping
from typing import Any, Optional

from pfos.audit import AuditLogger
from pfos.models.events import SCOPE_SETTINGS
from pfos.models.profile import ProfileSettings
from pfos.models.transaction import DEFAULT_PROFILE
from pfos.services.storage import (
    META,
    RecordStoreInterface,
    StorageReadError,
    StorageWriteError,
)
from pfos.services.sync import ChangeBus


SETTINGS_KEY_PREFIX = "settings:"


def settings_key(profile: str) -> str:
    return f"{SETTINGS_KEY_PREFIX}{profile}"


class SettingsManager:
    """Profile-scoped settings documents with lazy default seeding."""

    def __init__(
        self,
        store: RecordStoreInterface,
        bus: ChangeBus,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._bus = bus
        self._audit = audit_logger or AuditLogger()

    async def get_settings(self, profile: str = DEFAULT_PROFILE) -> dict:
        """
        Return the settings document for `profile`.

        A missing document (or one that cannot be read) is replaced by the
        defaults, which are persisted and announced before being returned.

        Raises:
            StorageUnavailableError: If the store cannot be opened
            StorageWriteError: If persisting the defaults fails
        """
        try:
            record = await self._store.get(META, settings_key(profile))
        except StorageReadError as e:
            self._audit.log_read_degraded("get_settings", str(e), profile=profile)
            record = None

        if record is not None and record.get("value") is not None:
            return record["value"]

        defaults = ProfileSettings.defaults_for(profile)
        await self._write(profile, defaults)
        self._audit.log_settings_saved(profile, seeded=True)
        self._bus.publish(SCOPE_SETTINGS)
        return defaults

    async def set_settings(
        self,
        profile: str,
        document: "Mapping[str, Any] | ProfileSettings",
    ) -> None:
        """
        Replace the whole settings document for `profile`.

        Fields absent from `document` are not preserved from the previous
        version.

        Raises:
            StorageUnavailableError: If the store cannot be opened
            StorageWriteError: If the write fails
        """
        if isinstance(document, ProfileSettings):
            value = document.to_document()
        else:
            value = dict(document)

        await self._write(profile, value)
        self._audit.log_settings_saved(profile)
        self._bus.publish(SCOPE_SETTINGS)

    async def _write(self, profile: str, value: dict) -> None:
        key = settings_key(profile)
        try:
            await self._store.put(META, {"key": key, "value": value})
        except StorageWriteError as e:
            self._audit.log_write_failed("settings", key, str(e))
            raise
