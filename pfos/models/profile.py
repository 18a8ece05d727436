"""
Profile Settings Document

One settings document per profile, stored in the meta collection under
`settings:{profile}`. The persisted JSON keys are camelCase
(`monthStartDay`), so the model dumps by alias.
"""

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_CATEGORIES = [
    "Rent",
    "Groceries",
    "Dining",
    "Transport",
    "Utilities",
    "Shopping",
    "Health",
    "EMI",
    "Entertainment",
    "Investments",
    "Income",
]

DEFAULT_ACCOUNTS = ["Bank", "Credit Card", "Wallet", "Savings"]

DEFAULT_BUDGETS = {
    "Rent": 25000,
    "Groceries": 8000,
    "Dining": 4000,
    "Transport": 3000,
    "Utilities": 3000,
    "Shopping": 3000,
    "Health": 2000,
    "EMI": 12000,
    "Entertainment": 2000,
}


class ProfileSettings(BaseModel):
    """
    Settings for a single profile.

    `month_start_day` is informational only; month boundaries elsewhere
    always run from day 1.
    """
    model_config = ConfigDict(populate_by_name=True)

    profile: str
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="ISO 4217-like currency code"
    )
    month_start_day: int = Field(
        default=1,
        ge=1,
        le=31,
        alias="monthStartDay",
    )
    categories: list[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    accounts: list[str] = Field(default_factory=lambda: list(DEFAULT_ACCOUNTS))
    budgets: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_BUDGETS))

    def to_document(self) -> dict:
        """Persisted JSON shape."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def defaults_for(cls, profile: str) -> dict:
        """The default settings document for a profile that has none."""
        return cls(profile=profile).to_document()
