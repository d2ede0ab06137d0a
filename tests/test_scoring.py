"""Tests for candidate scoring and the auto-accept policy (no database)."""

import pytest
from datetime import date
from decimal import Decimal

from bankrec.domain.entities import (
    BankStatementLine,
    Direction,
    LineStatus,
    Movement,
    MovementKind,
    MovementRef,
)
from bankrec.domain.scoring import (
    MatchOutcome,
    MatchPolicy,
    amount_matches,
    date_proximity,
    decide,
    rank_candidates,
    score_candidate,
    text_similarity,
)

POLICY = MatchPolicy()


def line(signed_amount, line_date=date(2024, 3, 10), description="", reference=None):
    amount = Decimal(signed_amount)
    return BankStatementLine(
        id=1,
        statement_id=1,
        line_number=1,
        line_date=line_date,
        description=description,
        reference=reference,
        debit=-amount if amount < 0 else Decimal("0"),
        credit=amount if amount > 0 else Decimal("0"),
        balance=None,
        status=LineStatus.UNMATCHED,
    )


def movement(movement_id, signed_amount, movement_date=date(2024, 3, 10), reference=None):
    amount = Decimal(signed_amount)
    return Movement(
        ref=MovementRef(MovementKind.JOURNAL_ENTRY, movement_id),
        tenant_id="acme",
        bank_account_id=1,
        amount=abs(amount),
        direction=Direction.INFLOW if amount > 0 else Direction.OUTFLOW,
        date=movement_date,
        reference=reference,
    )


class TestAmountMatches:
    """Tests for exact amount comparison."""

    def test_same_amount_and_direction(self):
        assert amount_matches(line("100.00"), movement("A", "100.00"), POLICY.amount_epsilon)

    def test_opposite_direction_never_matches(self):
        assert not amount_matches(line("100.00"), movement("A", "-100.00"), POLICY.amount_epsilon)
        assert not amount_matches(line("-100.00"), movement("A", "100.00"), POLICY.amount_epsilon)

    def test_within_epsilon(self):
        assert amount_matches(line("100.00"), movement("A", "100.004"), POLICY.amount_epsilon)

    def test_outside_epsilon(self):
        assert not amount_matches(line("100.00"), movement("A", "100.01"), POLICY.amount_epsilon)


class TestDateProximity:
    """Tests for the inverse-distance date bonus."""

    def test_same_day_is_full(self):
        assert date_proximity(date(2024, 3, 1), date(2024, 3, 1), 3) == 1.0

    def test_decreases_with_distance(self):
        one = date_proximity(date(2024, 3, 1), date(2024, 3, 2), 3)
        three = date_proximity(date(2024, 3, 1), date(2024, 3, 4), 3)
        assert 1.0 > one > three > 0.0

    def test_symmetric(self):
        assert date_proximity(date(2024, 3, 1), date(2024, 2, 28), 3) == date_proximity(
            date(2024, 3, 1), date(2024, 3, 3), 3
        )

    def test_outside_window_is_zero(self):
        assert date_proximity(date(2024, 3, 1), date(2024, 3, 5), 3) == 0.0


class TestTextSimilarity:
    """Tests for reference/description overlap."""

    def test_substring_is_case_insensitive(self):
        assert text_similarity("Payment INV-2024-001 received", "inv-2024-001") == 1.0

    def test_token_overlap(self):
        assert text_similarity("ACME rent march", "rent acme april") == pytest.approx(0.5)

    def test_short_strings_do_not_count_as_substring(self):
        assert text_similarity("a", "abc def") == 0.0

    def test_missing_text(self):
        assert text_similarity(None, "abc") == 0.0
        assert text_similarity("abc", "") == 0.0


class TestScoreCandidate:
    """Tests for combined candidate scores."""

    def test_exact_same_day_scores_base_plus_date(self):
        score = score_candidate(line("100.00"), movement("A", "100.00"), POLICY)
        assert score.amount_matches
        assert score.score == pytest.approx(POLICY.amount_score + POLICY.date_weight)

    def test_reference_adds_bonus(self):
        plain = score_candidate(line("100.00"), movement("A", "100.00"), POLICY)
        with_ref = score_candidate(
            line("100.00", reference="INV-7"), movement("A", "100.00", reference="INV-7"), POLICY
        )
        assert with_ref.score == pytest.approx(plain.score + POLICY.reference_weight)

    def test_amount_mismatch_scores_below_threshold(self):
        score = score_candidate(
            line("100.00", reference="INV-7"), movement("A", "99.00", reference="INV-7"), POLICY
        )
        assert not score.amount_matches
        assert score.score < POLICY.auto_accept_threshold

    def test_ranking_is_deterministic(self):
        candidates = [movement("B", "100.00"), movement("A", "100.00")]
        ranked = rank_candidates(line("100.00"), candidates, POLICY)
        assert [s.movement.ref.movement_id for s in ranked] == ["A", "B"]


class TestDecide:
    """Tests for the acceptance policy."""

    def test_no_candidates(self):
        decision = decide(line("10.00"), [], POLICY)
        assert decision.outcome is MatchOutcome.NO_CANDIDATES
        assert not decision.accepted

    def test_single_exact_candidate_accepted(self):
        target = movement("A", "100.00", date(2024, 3, 11))
        decision = decide(line("100.00"), [target], POLICY)
        assert decision.accepted
        assert decision.movement == target

    def test_reference_only_never_accepts(self):
        """Date and reference proximity alone never authorize a match."""
        candidate = movement("A", "100.50", reference="INV-7")
        decision = decide(line("100.00", reference="INV-7"), [candidate], POLICY)
        assert decision.outcome is MatchOutcome.NO_EXACT_AMOUNT

    def test_two_identical_candidates_are_ambiguous(self):
        candidates = [movement("A", "100.00"), movement("B", "100.00")]
        decision = decide(line("100.00"), candidates, POLICY)
        assert decision.outcome is MatchOutcome.AMBIGUOUS
        assert decision.movement is None

    def test_clear_winner_by_reference(self):
        winner = movement("A", "100.00", reference="INV-7")
        other = movement("B", "100.00")
        decision = decide(line("100.00", reference="INV-7"), [other, winner], POLICY)
        assert decision.accepted
        assert decision.movement == winner

    def test_clear_winner_by_date(self):
        near = movement("A", "100.00", date(2024, 3, 10))
        far = movement("B", "100.00", date(2024, 3, 13))
        decision = decide(line("100.00"), [far, near], POLICY)
        assert decision.accepted
        assert decision.movement == near

    def test_inexact_candidates_do_not_create_ties(self):
        exact = movement("A", "100.00")
        close = movement("B", "100.01", reference="deposit")
        decision = decide(line("100.00", description="deposit"), [exact, close], POLICY)
        assert decision.accepted
        assert decision.movement == exact

    def test_below_threshold(self):
        strict = MatchPolicy(auto_accept_threshold=150)
        decision = decide(line("100.00"), [movement("A", "100.00")], strict)
        assert decision.outcome is MatchOutcome.BELOW_THRESHOLD

    def test_zero_margin_accepts_any_strict_winner(self):
        policy = MatchPolicy(near_tie_margin=0)
        near = movement("A", "100.00", date(2024, 3, 10))
        far = movement("B", "100.00", date(2024, 3, 11))
        assert decide(line("100.00"), [near, far], policy).movement == near


class TestMatchPolicy:
    """Tests for policy validation."""

    def test_defaults(self):
        policy = MatchPolicy()
        assert policy.date_window_days == 3
        assert policy.amount_epsilon == Decimal("0.005")

    def test_negative_window_rejected(self):
        with pytest.raises(ValueError):
            MatchPolicy(date_window_days=-1)

    def test_negative_margin_rejected(self):
        with pytest.raises(ValueError):
            MatchPolicy(near_tie_margin=-0.1)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"near_tie_margin": float("nan")},
            {"near_tie_margin": float("inf")},
            {"auto_accept_threshold": float("nan")},
            {"date_weight": float("-inf")},
            {"amount_epsilon": Decimal("NaN")},
            {"amount_epsilon": Decimal("Infinity")},
        ],
    )
    def test_non_finite_values_rejected(self, overrides):
        with pytest.raises(ValueError, match="finite"):
            MatchPolicy(**overrides)
