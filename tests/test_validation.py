"""Tests for transaction validation."""

from datetime import date
from decimal import Decimal

import pytest

from fintrack.models.transaction import TransactionDraft, TransactionType, TransactionUpdate
from fintrack.validation import TransactionValidationError, TransactionValidator


TODAY = date(2026, 10, 17)


def _draft(**overrides) -> TransactionDraft:
    values = {
        "type": TransactionType.EXPENSE,
        "amount": Decimal("25"),
        "date": TODAY,
        "category": "Food",
        "currency": "USD",
    }
    values.update(overrides)
    return TransactionDraft(**values)


@pytest.fixture
def validator():
    return TransactionValidator(today=TODAY)


class TestDraftValidation:
    """Tests for TransactionValidator.validate."""

    def test_valid_draft(self, validator):
        result = validator.validate(_draft())
        assert result.is_valid
        assert result.issues == []

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
    def test_non_positive_amount_is_error(self, validator, amount):
        result = validator.validate(_draft(amount=amount))
        assert not result.is_valid
        assert result.issues[0].field == "amount"

    def test_empty_category_is_error(self, validator):
        result = validator.validate(_draft(category="   "))
        assert not result.is_valid
        assert result.issues[0].field == "category"

    def test_malformed_currency_is_error(self, validator):
        result = validator.validate(_draft(currency="DOLLARS"))
        assert not result.is_valid
        assert result.issues[0].issue_type == "invalid_format"

    def test_non_positive_exchange_rate_is_error(self, validator):
        result = validator.validate(_draft(
            type=TransactionType.INVESTMENT,
            from_asset="USD",
            to_asset="BTC",
            exchange_rate=Decimal("0"),
        ))
        assert not result.is_valid

    def test_ancient_date_is_warning(self, validator):
        """Test a likely typo in the year warns but does not block."""
        result = validator.validate(_draft(date=date(2006, 1, 1)))
        assert result.is_valid
        assert result.warnings

    def test_planned_in_past_is_warning(self, validator):
        result = validator.validate(_draft(is_planned=True, date=date(2026, 10, 1)))
        assert result.is_valid
        assert any("past" in message for message in result.warnings)

    def test_planned_investment_not_warned_as_past(self, validator):
        """Test investments are never planned, so no past-planned warning."""
        result = validator.validate(_draft(
            type=TransactionType.INVESTMENT,
            is_planned=True,
            date=date(2026, 10, 1),
        ))
        assert result.warnings == []

    def test_exchange_fields_on_expense_warn(self, validator):
        result = validator.validate(_draft(from_asset="USD", to_asset="EUR"))
        assert result.is_valid
        assert result.issues[0].issue_type == "ignored"


class TestUpdateValidation:
    """Tests for TransactionValidator.validate_update."""

    def test_only_present_fields_checked(self, validator):
        result = validator.validate_update(TransactionUpdate(description="new"))
        assert result.is_valid

    def test_clearing_amount_is_error(self, validator):
        result = validator.validate_update(TransactionUpdate(amount=None))
        assert not result.is_valid

    def test_clearing_category_is_error(self, validator):
        result = validator.validate_update(TransactionUpdate(category=""))
        assert not result.is_valid


class TestValidationError:
    """Tests for TransactionValidationError."""

    def test_message_lists_errors(self, validator):
        result = validator.validate(_draft(amount=Decimal("0"), category=""))
        error = TransactionValidationError(result)
        assert "Amount must be greater than zero" in str(error)
        assert "Category is required" in str(error)
        assert error.result is result
