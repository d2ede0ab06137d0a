"""Candidate pool: the read-only view of internal movements.

The pool is owned by the ledger and payment subsystems. The reconciliation
engine only ever queries it.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from sqlalchemy.exc import OperationalError

from bankrec.database.base import Database
from bankrec.domain.entities import Movement, MovementRef
from bankrec.domain.errors import CandidatePoolUnavailableError, TransientError


class CandidatePool(ABC):
    """Query capability over internal movements eligible for matching."""

    @abstractmethod
    def find_candidates(
        self, tenant_id: str, account_id: int, date_from: date, date_to: date
    ) -> list[Movement]:
        """Return the account's movements dated within [date_from, date_to].

        Raises:
            CandidatePoolUnavailableError: If the pool cannot be reached
        """
        pass

    @abstractmethod
    def get_movement(self, ref: MovementRef) -> Optional[Movement]:
        """Return a single movement, or None if it does not exist.

        Raises:
            CandidatePoolUnavailableError: If the pool cannot be reached
        """
        pass


class LedgerCandidatePool(CandidatePool):
    """Candidate pool backed by the ``ledger_movements`` table."""

    def __init__(self, db: Database):
        self.db = db

    def find_candidates(
        self, tenant_id: str, account_id: int, date_from: date, date_to: date
    ) -> list[Movement]:
        try:
            return self.db.list_movements(
                tenant_id, account_id, date_from=date_from, date_to=date_to
            )
        except (OperationalError, TransientError) as e:
            raise CandidatePoolUnavailableError(f"Candidate pool unavailable: {e}") from e

    def get_movement(self, ref: MovementRef) -> Optional[Movement]:
        try:
            return self.db.get_movement(ref)
        except (OperationalError, TransientError) as e:
            raise CandidatePoolUnavailableError(f"Candidate pool unavailable: {e}") from e
