"""
Transaction Model

One financial event. Records arrive from the UI as partial, loosely typed
dicts; this model is the single place where they become well-formed.

DESIGN DECISION: Defaults are applied at construction time, not at read
time. Anything that leaves the repository is already normalized, so the
query and aggregation layers never need per-field fallbacks for stored data.

The `pdate` sort key is a computed field. It cannot drift from `profile`
and `date`, because it is never stored independently on the model.
"""

import math
from collections.abc import Mapping
from datetime import date as date_type
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


TYPE_INCOME = "Income"
TYPE_EXPENSE = "Expense"

DEFAULT_PROFILE = "default"
DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_ACCOUNT = "Bank"

# Must not appear in a profile name or an ISO date
SORT_KEY_SEPARATOR = "|"


def new_transaction_id() -> str:
    return str(uuid4())


def sort_key(profile: str, date: str) -> str:
    """Secondary index key: profile and date joined by the separator."""
    return f"{profile}{SORT_KEY_SEPARATOR}{date}"


def coerce_amount(value: Any) -> float:
    """
    Coerce an amount to a float.

    Missing, empty and non-numeric values become 0. Amounts are plain
    floating-point magnitudes, not currency units.
    """
    if value is None or value == "":
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(amount):
        return 0.0
    return amount


def is_income_type(value: Any) -> bool:
    """Case-insensitive income test; everything else counts as expense."""
    return isinstance(value, str) and value.lower() == TYPE_INCOME.lower()


def _text_or(value: Any, default: str) -> str:
    # Missing or empty falls back; anything else is kept as its string form
    if value is None or value == "":
        return default
    return value if isinstance(value, str) else str(value)


class Transaction(BaseModel):
    """
    A stored transaction.

    Persisted shape:
        {id, profile, date, desc, category, account, type, amount,
         tags, note, pdate}
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(
        default_factory=new_transaction_id,
        description="Opaque unique identifier, generated when absent"
    )
    profile: str = Field(
        ...,
        description="Owner namespace; partitions all other data"
    )
    date: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Calendar date, YYYY-MM-DD"
    )
    desc: str = ""
    category: str = DEFAULT_CATEGORY
    account: str = DEFAULT_ACCOUNT
    type: str = TYPE_EXPENSE
    amount: float = 0.0
    tags: list[str] = Field(default_factory=list)
    note: str = ""

    @field_validator('id', mode='before')
    @classmethod
    def default_id(cls, v: Any) -> str:
        if v is None or v == "":
            return new_transaction_id()
        return str(v)

    @field_validator('date', mode='before')
    @classmethod
    def date_to_iso(cls, v: Any) -> Any:
        if isinstance(v, date_type):
            return v.isoformat()
        if isinstance(v, str):
            # Impossible dates would sort outside their month's index range
            try:
                return date_type.fromisoformat(v).isoformat()
            except ValueError:
                raise ValueError(f"Not a calendar date: {v!r}") from None
        return v

    @field_validator('desc', 'note', mode='before')
    @classmethod
    def empty_text(cls, v: Any) -> str:
        return _text_or(v, "")

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, v: Any) -> str:
        return _text_or(v, DEFAULT_CATEGORY)

    @field_validator('account', mode='before')
    @classmethod
    def default_account(cls, v: Any) -> str:
        return _text_or(v, DEFAULT_ACCOUNT)

    @field_validator('type', mode='before')
    @classmethod
    def default_type(cls, v: Any) -> str:
        return _text_or(v, TYPE_EXPENSE)

    @field_validator('amount', mode='before')
    @classmethod
    def numeric_amount(cls, v: Any) -> float:
        return coerce_amount(v)

    @field_validator('tags', mode='before')
    @classmethod
    def tag_list(cls, v: Any) -> list[str]:
        if not isinstance(v, (list, tuple)):
            return []
        return [str(tag) for tag in v]

    @computed_field
    @property
    def pdate(self) -> str:
        return sort_key(self.profile, self.date)

    @property
    def is_income(self) -> bool:
        return is_income_type(self.type)

    @classmethod
    def from_partial(
        cls,
        profile: str,
        partial: "Mapping[str, Any] | Transaction",
    ) -> "Transaction":
        """
        Build a full record from caller input.

        The profile argument always wins over any profile in the input, and
        a derived `pdate` in the input is ignored.
        """
        if isinstance(partial, Transaction):
            data = partial.model_dump()
        else:
            data = dict(partial)
        data.pop("pdate", None)
        data["profile"] = profile
        return cls.model_validate(data)

    def to_record(self) -> dict:
        """JSON-shaped record for storage, including the derived key."""
        return self.model_dump(mode="json")


def record_field(record: Any, name: str, default: Optional[Any] = None) -> Any:
    """Read a field from a Transaction or a transaction-like mapping."""
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)
