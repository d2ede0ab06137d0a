"""Candidate scoring and auto-match acceptance policy.

Everything here is a pure function of a statement line and a list of
candidate movements, so it can be tested without a database.

Scoring:
    - an exact amount match (same direction, absolute values within
      ``amount_epsilon``) contributes ``amount_score``
    - date proximity contributes up to ``date_weight``, decreasing linearly
      with the distance in days
    - reference/description overlap contributes up to ``reference_weight``

Only exact-amount candidates may be accepted. Date and reference only rank
candidates that already agree on the amount.
"""

import math
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Sequence

from bankrec.domain.entities import BankStatementLine, Movement

_TOKEN_RE = re.compile(r"[a-z0-9]+")
# Substring containment on very short strings ("1", "ab") is noise.
_MIN_SUBSTRING_LENGTH = 3


@dataclass(frozen=True)
class MatchPolicy:
    """Tunable thresholds and weights for automatic matching."""

    date_window_days: int = 3
    amount_epsilon: Decimal = Decimal("0.005")
    amount_score: float = 100.0
    date_weight: float = 20.0
    reference_weight: float = 30.0
    auto_accept_threshold: float = 100.0
    near_tie_margin: float = 5.0

    def __post_init__(self):
        for name in ("amount_score", "date_weight", "reference_weight", "auto_accept_threshold", "near_tie_margin"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be a finite number")
        if not self.amount_epsilon.is_finite():
            raise ValueError("amount_epsilon must be a finite number")
        if self.date_window_days < 0:
            raise ValueError("date_window_days must not be negative")
        if self.amount_epsilon < 0:
            raise ValueError("amount_epsilon must not be negative")
        if self.near_tie_margin < 0:
            raise ValueError("near_tie_margin must not be negative")


class MatchOutcome(str, Enum):
    """Why a line was or was not auto-matched."""

    ACCEPTED = "ACCEPTED"
    NO_CANDIDATES = "NO_CANDIDATES"
    NO_EXACT_AMOUNT = "NO_EXACT_AMOUNT"
    BELOW_THRESHOLD = "BELOW_THRESHOLD"
    AMBIGUOUS = "AMBIGUOUS"


@dataclass(frozen=True)
class CandidateScore:
    """Score breakdown for one candidate movement."""

    movement: Movement
    score: float
    amount_matches: bool
    date_distance: int
    reference_similarity: float

    def sort_key(self) -> tuple:
        return (
            -self.score,
            self.date_distance,
            self.movement.ref.kind.value,
            self.movement.ref.movement_id,
        )


@dataclass(frozen=True)
class MatchDecision:
    """Result of evaluating one line against its candidates."""

    line_id: int
    outcome: MatchOutcome
    scores: tuple[CandidateScore, ...] = ()
    movement: Optional[Movement] = None

    @property
    def accepted(self) -> bool:
        return self.outcome is MatchOutcome.ACCEPTED


def amount_matches(line: BankStatementLine, movement: Movement, epsilon: Decimal) -> bool:
    """Check direction and absolute amount agree within epsilon.

    Credits pair with inflows, debits with outflows. A zero line has no
    direction and only compares amounts.
    """
    direction = line.direction
    if direction is not None and direction is not movement.direction:
        return False
    return abs(abs(line.signed_amount) - abs(movement.amount)) <= epsilon


def date_proximity(line_date: date, movement_date: date, window_days: int) -> float:
    """Return 1.0 for the same day, falling towards 0 at the window edge.

    Dates outside the window score 0.
    """
    distance = abs((line_date - movement_date).days)
    if distance > window_days:
        return 0.0
    return 1.0 - distance / (window_days + 1)


def normalize_tokens(text: Optional[str]) -> set[str]:
    """Lowercase alphanumeric tokens of a free-text field."""
    if not text:
        return set()
    return set(_TOKEN_RE.findall(text.lower()))


def text_similarity(left: Optional[str], right: Optional[str]) -> float:
    """Similarity in [0, 1] between two free-text fields.

    Case-insensitive containment of one string in the other counts as a full
    match; otherwise the Jaccard overlap of normalized tokens is used.
    """
    if not left or not right:
        return 0.0
    a = left.strip().lower()
    b = right.strip().lower()
    shorter = min(len(a), len(b))
    if shorter >= _MIN_SUBSTRING_LENGTH and (a in b or b in a):
        return 1.0
    tokens_a = normalize_tokens(a)
    tokens_b = normalize_tokens(b)
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


def reference_similarity(line: BankStatementLine, movement: Movement) -> float:
    """Best similarity of the movement reference against line reference or description."""
    return max(
        text_similarity(line.reference, movement.reference),
        text_similarity(line.description, movement.reference),
    )


def score_candidate(
    line: BankStatementLine, movement: Movement, policy: MatchPolicy
) -> CandidateScore:
    """Score a single candidate for a line."""
    exact = amount_matches(line, movement, policy.amount_epsilon)
    proximity = date_proximity(line.line_date, movement.date, policy.date_window_days)
    similarity = reference_similarity(line, movement)

    score = 0.0
    if exact:
        score += policy.amount_score
    score += policy.date_weight * proximity
    score += policy.reference_weight * similarity

    return CandidateScore(
        movement=movement,
        score=round(score, 6),
        amount_matches=exact,
        date_distance=abs((line.line_date - movement.date).days),
        reference_similarity=similarity,
    )


def rank_candidates(
    line: BankStatementLine, candidates: Iterable[Movement], policy: MatchPolicy
) -> list[CandidateScore]:
    """Score candidates and order them best first (deterministic)."""
    scores = [score_candidate(line, movement, policy) for movement in candidates]
    return sorted(scores, key=CandidateScore.sort_key)


def decide(
    line: BankStatementLine, candidates: Sequence[Movement], policy: MatchPolicy
) -> MatchDecision:
    """Apply the acceptance policy to a line and its unclaimed candidates.

    The best exact-amount candidate is accepted only if it clears the
    auto-accept threshold and no other exact-amount candidate scores within
    the near-tie margin of it.
    """
    if not candidates:
        return MatchDecision(line_id=line.id, outcome=MatchOutcome.NO_CANDIDATES)

    ranked = tuple(rank_candidates(line, candidates, policy))
    eligible = [s for s in ranked if s.amount_matches]
    if not eligible:
        return MatchDecision(line_id=line.id, outcome=MatchOutcome.NO_EXACT_AMOUNT, scores=ranked)

    best = eligible[0]
    if best.score < policy.auto_accept_threshold:
        return MatchDecision(line_id=line.id, outcome=MatchOutcome.BELOW_THRESHOLD, scores=ranked)

    if len(eligible) > 1 and best.score - eligible[1].score <= policy.near_tie_margin:
        return MatchDecision(line_id=line.id, outcome=MatchOutcome.AMBIGUOUS, scores=ranked)

    return MatchDecision(
        line_id=line.id,
        outcome=MatchOutcome.ACCEPTED,
        scores=ranked,
        movement=best.movement,
    )
