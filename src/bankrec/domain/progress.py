"""Statement progress and account balance bookkeeping.

Both trackers run inside the caller's transaction, right after the line
state changes they account for.
"""

import logging
from datetime import datetime, UTC
from decimal import Decimal
from typing import Iterable

from bankrec.database.base import Database
from bankrec.domain.entities import (
    BalanceAudit,
    BankStatementLine,
    LineStatus,
    StatementProgress,
    StatementStatus,
    ZERO,
    percentage,
)
from bankrec.domain.errors import NotFoundError, bank_account_not_found, statement_not_found

logger = logging.getLogger(__name__)


def summarize_progress(statuses: Iterable[LineStatus]) -> StatementProgress:
    """Compute statement aggregates from the status of each of its lines."""
    statuses = list(statuses)
    total = len(statuses)
    matched = sum(1 for status in statuses if status.is_matched)
    return StatementProgress(
        matched_lines=matched,
        total_lines=total,
        match_percentage=percentage(matched, total),
        status=StatementStatus.derive(matched, total),
    )


class ProgressTracker:
    """Keeps a statement's matched count, percentage and status current."""

    def __init__(self, db: Database):
        self.db = db

    def recompute(self, statement_id: int) -> StatementProgress:
        """Recompute and persist the statement's aggregates.

        ``reconciled_at`` is stamped when the statement becomes RECONCILED
        and cleared when it leaves that state.
        """
        statement = self.db.get_statement(statement_id)
        if statement is None:
            raise NotFoundError(statement_not_found(statement_id))

        progress = summarize_progress(self.db.list_line_statuses(statement_id))

        reconciled_at = None
        if progress.status is StatementStatus.RECONCILED:
            reconciled_at = statement.reconciled_at or datetime.now(UTC)

        self.db.update_statement_progress(
            statement_id,
            matched_lines=progress.matched_lines,
            match_percentage=progress.match_percentage,
            status=progress.status,
            reconciled_at=reconciled_at,
        )
        if progress.status is not statement.status:
            logger.info(
                "Statement %s moved from %s to %s (%s/%s lines)",
                statement_id,
                statement.status.value,
                progress.status.value,
                progress.matched_lines,
                progress.total_lines,
            )
        return progress


class BalanceTracker:
    """Maintains an account's current balance from its matched lines.

    current_balance = initial_balance + sum of signed amounts of every
    MATCHED or MANUALLY_MATCHED line on any of the account's statements.
    """

    def __init__(self, db: Database):
        self.db = db

    def apply_line_change(self, bank_account_id: int, line: BankStatementLine, matched: bool) -> Decimal:
        """Apply the delta of one line becoming matched (or unmatched).

        Returns:
            The delta applied to the current balance
        """
        delta = line.signed_amount if matched else -line.signed_amount
        if delta != 0:
            self.db.adjust_current_balance(bank_account_id, delta)
        return delta

    def remove_lines(self, bank_account_id: int, lines: Iterable[BankStatementLine]) -> Decimal:
        """Take back the contribution of matched lines that are being deleted.

        Returns:
            The delta applied to the current balance
        """
        delta = -sum((line.signed_amount for line in lines if line.status.is_matched), ZERO)
        if delta != 0:
            self.db.adjust_current_balance(bank_account_id, delta)
        return delta

    def compute_full(self, bank_account_id: int) -> Decimal:
        """Recompute the balance from scratch without persisting it."""
        account = self.db.get_bank_account(bank_account_id)
        if account is None:
            raise NotFoundError(bank_account_not_found(bank_account_id))
        balance = account.initial_balance
        for line in self.db.list_matched_lines_for_account(bank_account_id):
            balance += line.signed_amount
        return balance

    def recompute_full(self, bank_account_id: int) -> Decimal:
        """Recompute the balance from scratch and persist it (repair)."""
        balance = self.compute_full(bank_account_id)
        self.db.set_current_balance(bank_account_id, balance)
        return balance

    def audit(self, bank_account_id: int) -> BalanceAudit:
        """Compare the stored balance with a full recomputation."""
        account = self.db.get_bank_account(bank_account_id)
        if account is None:
            raise NotFoundError(bank_account_not_found(bank_account_id))
        result = BalanceAudit(
            bank_account_id=bank_account_id,
            stored_balance=account.current_balance,
            computed_balance=self.compute_full(bank_account_id),
        )
        if not result.is_consistent:
            logger.warning(
                "Balance drift on bank account %s: stored %s, computed %s",
                bank_account_id,
                result.stored_balance,
                result.computed_balance,
            )
        return result
