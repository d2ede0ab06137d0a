"""Manual match resolution: user-driven match, override and unmatch."""

import logging
from datetime import datetime, UTC
from typing import Optional

from bankrec.database.base import Database
from bankrec.domain.access import require_line
from bankrec.domain.candidates import CandidatePool
from bankrec.domain.entities import (
    BankStatementLine as BankStatementLineEntity,
    Claim,
    ClaimType,
    LineStatus,
    MovementRef,
)
from bankrec.domain.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    cross_tenant_access,
    line_not_found,
    movement_already_claimed,
    movement_not_found,
)
from bankrec.domain.locking import hold_account_lock
from bankrec.domain.notifications import (
    ClaimListener,
    LoggingClaimListener,
    notify_recorded,
    notify_released,
)
from bankrec.domain.progress import BalanceTracker, ProgressTracker

logger = logging.getLogger(__name__)


class ManualMatchResolver:
    """Applies user decisions on top of automatic matching."""

    def __init__(
        self,
        db: Database,
        candidate_pool: CandidatePool,
        claim_listener: Optional[ClaimListener] = None,
        lock_timeout: Optional[float] = None,
    ):
        self.db = db
        self.candidate_pool = candidate_pool
        self.claim_listener = claim_listener or LoggingClaimListener()
        self.lock_timeout = lock_timeout
        self.progress_tracker = ProgressTracker(db)
        self.balance_tracker = BalanceTracker(db)

    def manual_match(
        self,
        tenant_id: str,
        line_id: int,
        movement_ref: MovementRef,
        matched_by: Optional[str] = None,
    ) -> BankStatementLineEntity:
        """Match a line to a movement chosen by the user.

        A line that is already matched (automatically or manually) is
        re-pointed: its previous claim is released and the new one taken in
        the same transaction. Re-submitting the current pair changes nothing.

        Args:
            tenant_id: Caller's tenant
            line_id: Statement line to match
            movement_ref: Movement to claim
            matched_by: User recorded on the line

        Returns:
            The updated line

        Raises:
            NotFoundError: If the line does not exist, or the movement does not
                exist on the statement's bank account
            PermissionDeniedError: If either belongs to another tenant
            ConflictError: If another line already claims the movement
        """
        line, statement = require_line(self.db, tenant_id, line_id)

        movement = self.candidate_pool.get_movement(movement_ref)
        if movement is None:
            raise NotFoundError(movement_not_found(movement_ref.kind.value, movement_ref.movement_id))
        if movement.tenant_id != tenant_id:
            raise PermissionDeniedError(cross_tenant_access("movement", str(movement_ref)))
        if movement.bank_account_id != statement.bank_account_id:
            raise NotFoundError(
                f"{movement_not_found(movement_ref.kind.value, movement_ref.movement_id)} "
                f"for bank account {statement.bank_account_id}"
            )

        if line.matched_movement == movement_ref:
            logger.debug("Line %s already matched to %s", line_id, movement_ref)
            return line

        released: list[Claim] = []
        with hold_account_lock(statement.bank_account_id, self.lock_timeout):
            with self.db.transaction():
                current = self.db.get_line(line_id)
                if current is None:
                    raise NotFoundError(line_not_found(line_id))
                if current.matched_movement == movement_ref:
                    return current

                existing = self.db.get_claim(movement_ref)
                if existing is not None:
                    raise ConflictError(
                        movement_already_claimed(
                            movement_ref.kind.value, movement_ref.movement_id, existing.statement_line_id
                        )
                    )
                status = current.status.transition_to(LineStatus.MANUALLY_MATCHED)

                previous = current.matched_movement
                if previous is not None:
                    old_claim = self.db.get_claim(previous)
                    if old_claim is not None:
                        released.append(old_claim)
                    self.db.release_claim(previous)

                if not self.db.claim_movement(movement_ref, line_id, ClaimType.MANUAL):
                    claim = self.db.get_claim(movement_ref)
                    raise ConflictError(
                        movement_already_claimed(
                            movement_ref.kind.value,
                            movement_ref.movement_id,
                            claim.statement_line_id if claim is not None else None,
                        )
                    )

                now = datetime.now(UTC)
                self.db.set_line_match(line_id, status, movement_ref, matched_at=now, matched_by=matched_by)
                if not current.status.is_matched:
                    self.balance_tracker.apply_line_change(statement.bank_account_id, current, matched=True)
                self.progress_tracker.recompute(statement.id)
                recorded = self.db.get_claim(movement_ref)

        if movement.signed_amount != current.signed_amount:
            logger.warning(
                "Line %s (%s) manually matched to %s with a different amount (%s)",
                line_id,
                current.signed_amount,
                movement_ref,
                movement.signed_amount,
            )
        logger.info(
            "Line %s manually matched to %s%s",
            line_id,
            movement_ref,
            f" (replacing {previous})" if previous is not None else "",
        )
        notify_released(self.claim_listener, released)
        notify_recorded(self.claim_listener, [recorded] if recorded is not None else [])
        return self.db.get_line(line_id)

    def unmatch(self, tenant_id: str, line_id: int) -> BankStatementLineEntity:
        """Return a matched line to UNMATCHED and release its claim.

        Raises:
            NotFoundError: If the line does not exist
            PermissionDeniedError: If it belongs to another tenant
            InvalidTransitionError: If the line is not matched
        """
        line, statement = require_line(self.db, tenant_id, line_id)

        released: list[Claim] = []
        with hold_account_lock(statement.bank_account_id, self.lock_timeout):
            with self.db.transaction():
                current = self.db.get_line(line_id)
                if current is None:
                    raise NotFoundError(line_not_found(line_id))
                current.status.transition_to(LineStatus.UNMATCHED)

                previous = current.matched_movement
                if previous is not None:
                    claim = self.db.get_claim(previous)
                    if claim is not None:
                        released.append(claim)
                    self.db.release_claim(previous)

                self.db.clear_line_match(line_id)
                self.balance_tracker.apply_line_change(statement.bank_account_id, current, matched=False)
                self.progress_tracker.recompute(statement.id)

        logger.info("Line %s unmatched from %s", line_id, previous)
        notify_released(self.claim_listener, released)
        return self.db.get_line(line_id)
