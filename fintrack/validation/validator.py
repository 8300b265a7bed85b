"""
Transaction Validation

DESIGN DECISION: Validation runs at the domain-entry boundary, before the
store is touched. Issues come in two severities:

ERRORS block the write:
- Non-positive amount
- Empty category
- Non-positive exchange rate
- Malformed currency or asset code

WARNINGS are reported and the write proceeds:
- Date more than ten years in the past (likely a typo)
- Planned transaction dated in the past
- Exchange fields on a non-investment (they are dropped on write)

IMPORTANT: Validation NEVER silently fixes issues.
Coercions (planned investments, stray exchange fields) are the
repository's job; the validator only reports.
"""

import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, Union

from fintrack.models.transaction import (
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
)
from fintrack.models.validation import ValidationIssue, ValidationResult


CODE_PATTERN = re.compile(r"^[A-Z]{3,5}$")
MAX_AGE_DAYS = 365 * 10


class TransactionValidationError(Exception):
    """Transaction rejected before it was written."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [issue.message for issue in result.issues if issue.severity == "error"]
        super().__init__("; ".join(messages) or "Transaction is invalid")


class TransactionValidator:
    """Checks drafts and partial updates before the repository writes them."""

    def __init__(self, today: Optional[date] = None):
        """
        Args:
            today: Fixed reference date; defaults to the current date on
                every call.
        """
        self._today = today

    def _reference_date(self) -> date:
        return self._today or date.today()

    def _check_amount(self, amount: Optional[Decimal], issues: list[ValidationIssue]) -> None:
        if amount is not None and amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))

    def _check_category(self, category: Optional[str], issues: list[ValidationIssue]) -> None:
        if category is not None and not category.strip():
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
                severity="error",
            ))

    def _check_codes(
        self,
        values: Union[TransactionDraft, TransactionUpdate],
        issues: list[ValidationIssue],
    ) -> None:
        for field in ("currency", "from_asset", "to_asset"):
            code = getattr(values, field)
            if code is not None and not CODE_PATTERN.match(code):
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="invalid_format",
                    message=f"'{code}' is not a valid currency or asset code",
                    severity="error",
                ))

        if values.exchange_rate is not None and values.exchange_rate <= 0:
            issues.append(ValidationIssue(
                field="exchange_rate",
                issue_type="invalid_value",
                message="Exchange rate must be greater than zero",
                severity="error",
            ))

    def _check_date(
        self,
        value: Optional[date],
        is_planned: bool,
        issues: list[ValidationIssue],
    ) -> None:
        if value is None:
            return
        today = self._reference_date()

        if value < today - timedelta(days=MAX_AGE_DAYS):
            issues.append(ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Date ({value}) is more than ten years ago",
                severity="warning",
            ))

        if is_planned and value < today:
            issues.append(ValidationIssue(
                field="date",
                issue_type="past_planned",
                message=f"Planned transaction is dated in the past ({value})",
                severity="warning",
            ))

    def validate(self, draft: TransactionDraft) -> ValidationResult:
        """Validate a new transaction."""
        issues: list[ValidationIssue] = []

        self._check_amount(draft.amount, issues)
        self._check_category(draft.category, issues)
        self._check_codes(draft, issues)

        is_investment = draft.type == TransactionType.INVESTMENT
        self._check_date(draft.date, draft.is_planned and not is_investment, issues)

        if not is_investment and (draft.from_asset or draft.to_asset or draft.exchange_rate):
            issues.append(ValidationIssue(
                field="exchange_rate",
                issue_type="ignored",
                message="Exchange details are only kept for investments",
                severity="warning",
            ))

        return ValidationResult(issues=issues)

    def validate_update(self, changes: TransactionUpdate) -> ValidationResult:
        """Validate the fields present in a partial update."""
        issues: list[ValidationIssue] = []

        fields = changes.model_fields_set
        if "amount" in fields:
            if changes.amount is None:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount cannot be cleared",
                    severity="error",
                ))
            self._check_amount(changes.amount, issues)
        if "category" in fields:
            self._check_category(changes.category or "", issues)
        self._check_codes(changes, issues)
        self._check_date(changes.date, bool(changes.is_planned), issues)

        return ValidationResult(issues=issues)
