"""
Data Models Package

Pydantic models for everything that is stored, broadcast, or handed to
the renderer.
"""

from pfos.models.transaction import (
    DEFAULT_ACCOUNT,
    DEFAULT_CATEGORY,
    DEFAULT_PROFILE,
    SORT_KEY_SEPARATOR,
    TYPE_EXPENSE,
    TYPE_INCOME,
    Transaction,
    coerce_amount,
    is_income_type,
    new_transaction_id,
    record_field,
    sort_key,
)
from pfos.models.profile import (
    DEFAULT_ACCOUNTS,
    DEFAULT_BUDGETS,
    DEFAULT_CATEGORIES,
    ProfileSettings,
)
from pfos.models.events import (
    DATA_CHANGED,
    SCOPE_SETTINGS,
    SCOPE_TRANSACTIONS,
    ChangeEvent,
)
from pfos.models.reports import (
    CategoryTotal,
    MonthOverview,
    Summary,
    WeeklySeries,
)
from pfos.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction
    "DEFAULT_ACCOUNT",
    "DEFAULT_CATEGORY",
    "DEFAULT_PROFILE",
    "SORT_KEY_SEPARATOR",
    "TYPE_EXPENSE",
    "TYPE_INCOME",
    "Transaction",
    "coerce_amount",
    "is_income_type",
    "new_transaction_id",
    "record_field",
    "sort_key",
    # Settings document
    "DEFAULT_ACCOUNTS",
    "DEFAULT_BUDGETS",
    "DEFAULT_CATEGORIES",
    "ProfileSettings",
    # Change events
    "DATA_CHANGED",
    "SCOPE_SETTINGS",
    "SCOPE_TRANSACTIONS",
    "ChangeEvent",
    # Reports
    "CategoryTotal",
    "MonthOverview",
    "Summary",
    "WeeklySeries",
    # Audit
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
