"""Outbound claim notifications to the ledger side."""

import logging
from abc import ABC, abstractmethod

from bankrec.domain.entities import Claim

logger = logging.getLogger(__name__)


class ClaimListener(ABC):
    """Receives claim records after the owning transaction has committed."""

    @abstractmethod
    def claim_recorded(self, claim: Claim) -> None:
        pass

    @abstractmethod
    def claim_released(self, claim: Claim) -> None:
        pass


class LoggingClaimListener(ClaimListener):
    """Default listener: writes each claim event to the log."""

    def claim_recorded(self, claim: Claim) -> None:
        logger.info(
            "Movement %s reconciled by statement line %s (%s)",
            claim.movement,
            claim.statement_line_id,
            claim.claim_type.value,
        )

    def claim_released(self, claim: Claim) -> None:
        logger.info(
            "Movement %s released by statement line %s", claim.movement, claim.statement_line_id
        )


def notify_recorded(listener: ClaimListener, claims: list[Claim]) -> None:
    """Deliver recorded claims; a failing listener never undoes a commit."""
    for claim in claims:
        try:
            listener.claim_recorded(claim)
        except Exception:
            logger.exception("Claim listener failed for movement %s", claim.movement)


def notify_released(listener: ClaimListener, claims: list[Claim]) -> None:
    """Deliver released claims; a failing listener never undoes a commit."""
    for claim in claims:
        try:
            listener.claim_released(claim)
        except Exception:
            logger.exception("Claim listener failed for movement %s", claim.movement)
