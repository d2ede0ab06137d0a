"""Automatic matching of statement lines against the candidate pool.

A run has two phases:

1. Evaluation (no writes): load every candidate once for the window
   covering all unmatched lines, drop movements already claimed, then
   decide each line with the pure scoring policy. Movements accepted for
   one line are withheld from the following lines.
2. Commit: under the account lock and in a single transaction, claim each
   accepted movement with the atomic claim primitive, write the line,
   apply the balance delta, and recompute the statement aggregates once.

A failure before or during the commit leaves nothing written. Claims that
lose a race against another run leave their line UNMATCHED.
"""

import logging
import threading
import time
from datetime import datetime, timedelta, UTC
from typing import Optional, Sequence

from bankrec.database.base import Database
from bankrec.domain.candidates import CandidatePool
from bankrec.domain.entities import (
    BankStatement,
    BankStatementLine,
    Claim,
    ClaimType,
    LineStatus,
    Movement,
    MovementRef,
    ReconciliationResult,
)
from bankrec.domain.errors import NotFoundError, ReconciliationTimeoutError, statement_not_found
from bankrec.domain.locking import hold_account_lock
from bankrec.domain.notifications import ClaimListener, LoggingClaimListener, notify_recorded
from bankrec.domain.progress import BalanceTracker, ProgressTracker
from bankrec.domain.scoring import MatchDecision, MatchOutcome, MatchPolicy, decide

logger = logging.getLogger(__name__)


class _Deadline:
    """Monotonic deadline derived from the caller's timeout."""

    def __init__(self, timeout: Optional[float]):
        self.expires_at = None if timeout is None else time.monotonic() + timeout

    def remaining(self) -> Optional[float]:
        if self.expires_at is None:
            return None
        return max(self.expires_at - time.monotonic(), 0.0)

    def check(self, stage: str) -> None:
        if self.expires_at is not None and time.monotonic() >= self.expires_at:
            raise ReconciliationTimeoutError(f"Matching run timed out during {stage}; nothing was committed")


class MatchingEngine:
    """Runs automatic matching for one statement at a time."""

    def __init__(
        self,
        db: Database,
        candidate_pool: CandidatePool,
        policy: Optional[MatchPolicy] = None,
        claim_listener: Optional[ClaimListener] = None,
        lock_timeout: Optional[float] = None,
    ):
        """Initialize matching engine.

        Args:
            db: Database instance
            candidate_pool: Read-only source of internal movements
            policy: Scoring thresholds (defaults to MatchPolicy())
            claim_listener: Receives claims after the run commits
            lock_timeout: Seconds to wait for the account lock (None waits forever)
        """
        self.db = db
        self.candidate_pool = candidate_pool
        self.policy = policy or MatchPolicy()
        self.claim_listener = claim_listener or LoggingClaimListener()
        self.lock_timeout = lock_timeout
        self.progress_tracker = ProgressTracker(db)
        self.balance_tracker = BalanceTracker(db)

    def match(
        self,
        statement_id: int,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReconciliationResult:
        """Auto-match every UNMATCHED line of a statement.

        Args:
            statement_id: Statement to reconcile
            timeout: Seconds the whole run may take before committing
            cancel_event: When set, no further lines are evaluated; matches
                already decided are still committed

        Returns:
            ReconciliationResult for this run

        Raises:
            NotFoundError: If the statement does not exist
            CandidatePoolUnavailableError: If the candidate pool cannot be queried
            ReconciliationTimeoutError: If the timeout expires before the commit
            TransientError: If storage or the account lock is unavailable
        """
        deadline = _Deadline(timeout)
        statement = self.db.get_statement(statement_id)
        if statement is None:
            raise NotFoundError(statement_not_found(statement_id))

        lines = self.db.list_lines(statement_id, status=LineStatus.UNMATCHED)
        logger.info(
            "Matching statement %s: %s unmatched of %s lines",
            statement_id,
            len(lines),
            statement.total_lines,
        )

        pool = self._load_candidates(statement, lines)
        deadline.check("candidate lookup")

        claimed = self.db.claimed_movements([movement.ref for movement in pool])
        decisions, cancelled = self.evaluate(lines, pool, claimed, cancel_event)
        deadline.check("candidate evaluation")

        lines_by_id = {line.id: line for line in lines}
        accepted = [(lines_by_id[d.line_id], d.movement) for d in decisions if d.accepted]

        lock_wait = self._lock_wait(deadline)
        with hold_account_lock(statement.bank_account_id, lock_wait):
            deadline.check("lock acquisition")
            with self.db.transaction():
                recorded, conflicts = self._commit(statement, accepted)
                progress = self.progress_tracker.recompute(statement_id)

        notify_recorded(self.claim_listener, recorded)

        result = ReconciliationResult(
            statement_id=statement_id,
            total_lines=progress.total_lines,
            matched_lines=progress.matched_lines,
            match_percentage=progress.match_percentage,
            new_matches=len(recorded),
            conflicts=conflicts,
            cancelled=cancelled,
        )
        logger.info(
            "Matching statement %s finished: %s new, %s/%s matched (%s%%)%s",
            statement_id,
            result.new_matches,
            result.matched_lines,
            result.total_lines,
            result.match_percentage,
            " [cancelled]" if cancelled else "",
        )
        return result

    def evaluate(
        self,
        lines: Sequence[BankStatementLine],
        pool: Sequence[Movement],
        claimed: set[MovementRef],
        cancel_event: Optional[threading.Event] = None,
    ) -> tuple[list[MatchDecision], bool]:
        """Decide each line in order without touching storage.

        Returns:
            (decisions, cancelled)
        """
        window = timedelta(days=self.policy.date_window_days)
        taken = set(claimed)
        decisions: list[MatchDecision] = []

        for line in lines:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Matching cancelled after %s of %s lines", len(decisions), len(lines))
                return decisions, True

            candidates = [
                movement
                for movement in pool
                if movement.ref not in taken and abs(movement.date - line.line_date) <= window
            ]
            decision = decide(line, candidates, self.policy)
            decisions.append(decision)

            if decision.accepted:
                taken.add(decision.movement.ref)
                logger.debug(
                    "Line %s -> %s (score %.2f)",
                    line.id,
                    decision.movement.ref,
                    decision.scores[0].score,
                )
            elif decision.outcome is MatchOutcome.AMBIGUOUS:
                logger.debug(
                    "Line %s left unmatched: %s candidates tie",
                    line.id,
                    sum(1 for s in decision.scores if s.amount_matches),
                )

        return decisions, False

    def _load_candidates(
        self, statement: BankStatement, lines: Sequence[BankStatementLine]
    ) -> list[Movement]:
        if not lines:
            return []
        window = timedelta(days=self.policy.date_window_days)
        date_from = min(line.line_date for line in lines) - window
        date_to = max(line.line_date for line in lines) + window
        return self.candidate_pool.find_candidates(
            statement.tenant_id, statement.bank_account_id, date_from, date_to
        )

    def _lock_wait(self, deadline: _Deadline) -> Optional[float]:
        remaining = deadline.remaining()
        if remaining is None:
            return self.lock_timeout
        if self.lock_timeout is None:
            return remaining
        return min(remaining, self.lock_timeout)

    def _commit(
        self,
        statement: BankStatement,
        accepted: Sequence[tuple[BankStatementLine, Movement]],
    ) -> tuple[list[Claim], int]:
        """Claim and write accepted matches; must run inside a transaction."""
        recorded: list[Claim] = []
        conflicts = 0
        now = datetime.now(UTC)

        for line, movement in accepted:
            current = self.db.get_line(line.id)
            if current is None or current.status is not LineStatus.UNMATCHED:
                logger.debug("Line %s changed since evaluation; skipping", line.id)
                continue
            status = current.status.transition_to(LineStatus.MATCHED)

            if not self.db.claim_movement(movement.ref, line.id, ClaimType.AUTO):
                conflicts += 1
                logger.warning(
                    "Movement %s was claimed concurrently; line %s stays unmatched",
                    movement.ref,
                    line.id,
                )
                continue

            self.db.set_line_match(line.id, status, movement.ref, matched_at=now)
            self.balance_tracker.apply_line_change(statement.bank_account_id, current, matched=True)
            recorded.append(
                Claim(
                    movement=movement.ref,
                    statement_line_id=line.id,
                    claim_type=ClaimType.AUTO,
                    claimed_at=now,
                )
            )

        return recorded, conflicts
