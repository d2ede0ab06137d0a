"""Reconciliation orchestrator.

Entry point for importing statements, running automatic matching and
applying manual decisions. Every operation is scoped to the caller's
tenant.
"""

import threading
from datetime import date, timedelta
from typing import Optional, Sequence

from bankrec.database.base import Database
from bankrec.domain.access import require_line, require_statement
from bankrec.domain.candidates import CandidatePool, LedgerCandidatePool
from bankrec.domain.entities import (
    BankStatementLine as BankStatementLineEntity,
    MovementRef,
    RawStatementLine,
    ReconciliationResult,
)
from bankrec.domain.manual import ManualMatchResolver
from bankrec.domain.matching import MatchingEngine
from bankrec.domain.notifications import ClaimListener, LoggingClaimListener
from bankrec.domain.scoring import CandidateScore, MatchPolicy, rank_candidates
from bankrec.domain.statement import StatementService


class ReconciliationService:
    """Coordinates the statement store, matching engine and manual resolver."""

    def __init__(
        self,
        db: Database,
        candidate_pool: Optional[CandidatePool] = None,
        policy: Optional[MatchPolicy] = None,
        claim_listener: Optional[ClaimListener] = None,
        lock_timeout: Optional[float] = None,
    ):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            candidate_pool: Source of movements (defaults to the ledger table)
            policy: Matching policy (defaults to MatchPolicy())
            claim_listener: Receives claim events after commit
            lock_timeout: Seconds to wait for an account's claim lock
        """
        self.db = db
        self.candidate_pool = candidate_pool or LedgerCandidatePool(db)
        self.policy = policy or MatchPolicy()
        listener = claim_listener or LoggingClaimListener()
        self.statements = StatementService(db, claim_listener=listener, lock_timeout=lock_timeout)
        self.engine = MatchingEngine(
            db,
            self.candidate_pool,
            policy=self.policy,
            claim_listener=listener,
            lock_timeout=lock_timeout,
        )
        self.resolver = ManualMatchResolver(
            db, self.candidate_pool, claim_listener=listener, lock_timeout=lock_timeout
        )

    def import_statement(
        self,
        tenant_id: str,
        bank_account_id: int,
        file_name: str,
        period_start: date,
        period_end: date,
        lines: Sequence[RawStatementLine],
        imported_by: Optional[str] = None,
    ) -> int:
        """Import a statement without matching it. Returns statement ID."""
        return self.statements.import_statement(
            tenant_id,
            bank_account_id,
            file_name,
            period_start,
            period_end,
            lines,
            imported_by=imported_by,
        )

    def import_and_match(
        self,
        tenant_id: str,
        bank_account_id: int,
        file_name: str,
        period_start: date,
        period_end: date,
        lines: Sequence[RawStatementLine],
        imported_by: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ReconciliationResult:
        """Import a statement, then run automatic matching on it.

        The import commits on its own. If matching then fails with a
        transient error the statement stays imported and matching can be
        re-run with run_matching.
        """
        statement_id = self.import_statement(
            tenant_id,
            bank_account_id,
            file_name,
            period_start,
            period_end,
            lines,
            imported_by=imported_by,
        )
        return self.engine.match(statement_id, timeout=timeout)

    def run_matching(
        self,
        tenant_id: str,
        statement_id: int,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReconciliationResult:
        """(Re-)run automatic matching for a statement.

        Only UNMATCHED lines are considered; existing matches are kept, so
        running twice in a row yields no new matches the second time.
        """
        require_statement(self.db, tenant_id, statement_id)
        return self.engine.match(statement_id, timeout=timeout, cancel_event=cancel_event)

    def manual_match(
        self,
        tenant_id: str,
        line_id: int,
        movement_ref: MovementRef,
        matched_by: Optional[str] = None,
    ) -> BankStatementLineEntity:
        """Match a line to a chosen movement. See ManualMatchResolver.manual_match."""
        return self.resolver.manual_match(tenant_id, line_id, movement_ref, matched_by=matched_by)

    def unmatch(self, tenant_id: str, line_id: int) -> BankStatementLineEntity:
        """Return a matched line to UNMATCHED. See ManualMatchResolver.unmatch."""
        return self.resolver.unmatch(tenant_id, line_id)

    def get_reconciliation_result(self, tenant_id: str, statement_id: int) -> ReconciliationResult:
        """Current aggregate state of a statement, without running anything."""
        statement = require_statement(self.db, tenant_id, statement_id)
        return ReconciliationResult(
            statement_id=statement.id,
            total_lines=statement.total_lines,
            matched_lines=statement.matched_lines,
            match_percentage=statement.match_percentage,
            new_matches=0,
        )

    def suggest_candidates(self, tenant_id: str, line_id: int) -> list[CandidateScore]:
        """Rank the unclaimed movements within the date window of a line.

        Used to pick a movement for a manual match; nothing is written.
        """
        line, statement = require_line(self.db, tenant_id, line_id)
        window = timedelta(days=self.policy.date_window_days)
        pool = self.candidate_pool.find_candidates(
            statement.tenant_id,
            statement.bank_account_id,
            line.line_date - window,
            line.line_date + window,
        )
        claimed = self.db.claimed_movements([m.ref for m in pool])
        return rank_candidates(line, [m for m in pool if m.ref not in claimed], self.policy)
