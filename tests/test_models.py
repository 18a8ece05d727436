"""
Tests for PFOS Core models

Test strategy:
1. Unit tests for models and pure functions (no storage)
2. Integration tests against a real SQLite file per test
3. Cross-instance tests with two buses sharing a channel and marker
"""

import pytest
from datetime import date

from pfos.models.transaction import (
    SORT_KEY_SEPARATOR,
    Transaction,
    coerce_amount,
    sort_key,
)
from pfos.models.profile import DEFAULT_CATEGORIES, ProfileSettings
from pfos.models.events import ChangeEvent
from pfos.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestTransactionModel:
    """Tests for the Transaction model and its write-boundary defaults."""

    def test_defaults_applied(self):
        """Test that missing fields get their defaults."""
        tx = Transaction.from_partial("p1", {"date": "2026-01-05"})
        assert tx.profile == "p1"
        assert tx.desc == ""
        assert tx.note == ""
        assert tx.category == "Uncategorized"
        assert tx.account == "Bank"
        assert tx.type == "Expense"
        assert tx.amount == 0
        assert tx.tags == []
        assert tx.id

    def test_empty_strings_fall_back_to_defaults(self):
        """Test that empty category/account/type behave like missing ones."""
        tx = Transaction.from_partial(
            "p1",
            {"date": "2026-01-05", "category": "", "account": "", "type": None},
        )
        assert tx.category == "Uncategorized"
        assert tx.account == "Bank"
        assert tx.type == "Expense"

    def test_amount_coercion(self):
        """Test numeric strings are parsed and junk becomes 0."""
        assert Transaction.from_partial("p", {"date": "2026-01-01", "amount": "12.5"}).amount == 12.5
        assert Transaction.from_partial("p", {"date": "2026-01-01", "amount": "abc"}).amount == 0
        assert Transaction.from_partial("p", {"date": "2026-01-01", "amount": None}).amount == 0

    def test_coerce_amount_nan(self):
        assert coerce_amount(float("nan")) == 0
        assert coerce_amount([1, 2]) == 0
        assert coerce_amount(7) == 7.0

    def test_tags_must_be_a_list(self):
        tx = Transaction.from_partial("p", {"date": "2026-01-01", "tags": "food"})
        assert tx.tags == []
        tx = Transaction.from_partial("p", {"date": "2026-01-01", "tags": ["a", 2]})
        assert tx.tags == ["a", "2"]

    def test_generates_id_when_empty(self):
        a = Transaction.from_partial("p", {"date": "2026-01-01", "id": ""})
        b = Transaction.from_partial("p", {"date": "2026-01-01"})
        assert a.id and b.id and a.id != b.id

    def test_keeps_given_id(self):
        tx = Transaction.from_partial("p", {"id": "abc", "date": "2026-01-01"})
        assert tx.id == "abc"

    def test_profile_argument_wins(self):
        """Test that a profile inside the partial record is ignored."""
        tx = Transaction.from_partial("p1", {"date": "2026-01-01", "profile": "p2"})
        assert tx.profile == "p1"

    def test_accepts_date_objects(self):
        tx = Transaction.from_partial("p", {"date": date(2026, 2, 3)})
        assert tx.date == "2026-02-03"

    def test_rejects_malformed_date(self):
        with pytest.raises(ValueError):
            Transaction.from_partial("p", {"date": "03/02/2026"})

    @pytest.mark.parametrize("bad_date", ["2026-01-32", "2026-02-30", "2026-13-01", "2026-00-10"])
    def test_rejects_impossible_calendar_date(self, bad_date):
        """Test that well-shaped but impossible dates never reach the index."""
        with pytest.raises(ValueError):
            Transaction.from_partial("p", {"date": bad_date})

    def test_accepts_leap_day(self):
        assert Transaction.from_partial("p", {"date": "2024-02-29"}).pdate == "p|2024-02-29"

    def test_non_string_text_fields_coerced(self):
        """Test that numeric text fields are kept as strings rather than rejected."""
        tx = Transaction.from_partial(
            "p",
            {"date": "2026-01-01", "desc": 42, "category": 7, "account": 3, "note": 1.5},
        )
        assert tx.desc == "42"
        assert tx.category == "7"
        assert tx.account == "3"
        assert tx.note == "1.5"

    def test_requires_date(self):
        with pytest.raises(ValueError):
            Transaction.from_partial("p", {"amount": 10})

    def test_sort_key_derived(self):
        tx = Transaction.from_partial("p1", {"date": "2026-01-05"})
        assert tx.pdate == f"p1{SORT_KEY_SEPARATOR}2026-01-05"
        assert tx.to_record()["pdate"] == sort_key("p1", "2026-01-05")

    def test_sort_key_follows_mutation(self):
        """Test that changing profile or date re-derives the sort key."""
        tx = Transaction.from_partial("p1", {"date": "2026-01-05"})
        tx.date = "2026-02-01"
        tx.profile = "p2"
        assert tx.to_record()["pdate"] == "p2|2026-02-01"

    def test_stale_sort_key_in_input_ignored(self):
        tx = Transaction.from_partial("p1", {"date": "2026-01-05", "pdate": "x|1999-01-01"})
        assert tx.pdate == "p1|2026-01-05"

    def test_is_income_case_insensitive(self):
        assert Transaction.from_partial("p", {"date": "2026-01-01", "type": "income"}).is_income
        assert Transaction.from_partial("p", {"date": "2026-01-01", "type": "INCOME"}).is_income
        assert not Transaction.from_partial("p", {"date": "2026-01-01", "type": "Refund"}).is_income

    def test_round_trip_from_record(self):
        tx = Transaction.from_partial("p", {"date": "2026-01-01", "amount": 5, "tags": ["x"]})
        again = Transaction.model_validate(tx.to_record())
        assert again == tx


class TestProfileSettings:
    """Tests for the settings document model."""

    def test_defaults_document(self):
        doc = ProfileSettings.defaults_for("new-profile")
        assert doc["profile"] == "new-profile"
        assert doc["currency"] == "USD"
        assert doc["monthStartDay"] == 1
        assert doc["categories"] == DEFAULT_CATEGORIES
        assert doc["accounts"] == ["Bank", "Credit Card", "Wallet", "Savings"]
        assert doc["budgets"]["Rent"] == 25000

    def test_default_lists_not_shared(self):
        a = ProfileSettings(profile="a")
        b = ProfileSettings(profile="b")
        a.categories.append("Pets")
        assert "Pets" not in b.categories

    def test_populate_by_alias_or_name(self):
        assert ProfileSettings(profile="p", monthStartDay=5).month_start_day == 5
        assert ProfileSettings(profile="p", month_start_day=6).to_document()["monthStartDay"] == 6


class TestChangeEvent:
    """Tests for change events and their broadcast wire shape."""

    def test_now_stamps_milliseconds(self):
        event = ChangeEvent.now("transactions")
        assert event.scope == "transactions"
        assert event.at > 1_600_000_000_000

    def test_message_round_trip(self):
        event = ChangeEvent(scope="settings", at=123)
        assert ChangeEvent.from_message(event.to_message()) == event

    def test_other_message_types_ignored(self):
        assert ChangeEvent.from_message({"type": "PING", "scope": "x", "at": 1}) is None
        assert ChangeEvent.from_message("DATA_CHANGED") is None
        assert ChangeEvent.from_message({"type": "DATA_CHANGED"}) is None


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            description="Transaction saved",
        )
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        event = AuditEventBuilder.transaction_saved("tx-1", "p1", "2026-01-02", 50.0)
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_saved"
        assert log_dict["entity_id"] == "tx-1"
        assert log_dict["details"]["amount"] == 50.0

    def test_read_degraded_is_warning(self):
        event = AuditEventBuilder.read_degraded("count", "disk I/O error", profile="p1")
        assert event.severity == AuditSeverity.WARNING
        assert event.error_message == "disk I/O error"

    def test_settings_seeded_event(self):
        event = AuditEventBuilder.settings_saved("p1", seeded=True)
        assert event.event_type == AuditEventType.SETTINGS_SEEDED
        assert event.entity_id == "settings:p1"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
