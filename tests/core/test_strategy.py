"""Tests for computer seat play, betting and the dealer rule."""

import pytest
from random import Random

from blackjack.cards import Card
from blackjack.hand import Hand
from blackjack.strategy import BET_AMOUNTS, Action, dealer_decision, generate_bet, player_decision

TRIALS = 10_000
TOLERANCE = 0.03


def hand_of(*specs: str) -> Hand:
    return Hand([Card.from_string(s) for s in specs])


def hit_rate(hand: Hand, up_card: str, seed: int = 99) -> float:
    """Fraction of decisions that hit over many seeded trials."""
    rng = Random(seed)
    dealer_card = Card.from_string(up_card)
    hits = sum(
        player_decision(hand, hand.value, dealer_card, rng) == Action.HIT
        for _ in range(TRIALS)
    )
    return hits / TRIALS


class TestDealerDecision:
    """Tests for the dealer's fixed rule."""

    def test_hits_16_or_less(self):
        for total in range(2, 17):
            assert dealer_decision(total) == Action.HIT

    def test_stands_on_17_and_up(self):
        for total in range(17, 27):
            assert dealer_decision(total) == Action.STAND


class TestPlayerDecision:
    """Tests for the computer seat heuristic."""

    @pytest.mark.parametrize("up_card", ["2S", "6H", "7C", "KD", "AS"])
    def test_stands_on_19_or_more(self, up_card):
        """19+ always stands, whatever the dealer shows."""
        for specs in (("10S", "9H"), ("10S", "KH"), ("AS", "8H"), ("5S", "5H", "AS")):
            hand = hand_of(*specs)
            assert hand.value >= 19
            assert hit_rate(hand, up_card) == 0.0

    @pytest.mark.parametrize("up_card", ["2S", "6H", "7C", "KD", "AS"])
    def test_hits_11_or_less(self, up_card):
        """11 or less always hits."""
        for specs in (("2S", "3H"), ("5S", "6H"), ("4S", "3H", "2C")):
            hand = hand_of(*specs)
            assert hit_rate(hand, up_card) == 1.0

    def test_soft_17_mostly_stands(self):
        """Soft 17-18 hits about 30% of the time against any up card."""
        assert hit_rate(hand_of("AS", "6H"), "10C") == pytest.approx(0.30, abs=TOLERANCE)
        assert hit_rate(hand_of("AS", "7H"), "4C") == pytest.approx(0.30, abs=TOLERANCE)

    def test_soft_rule_checked_before_weak_dealer(self):
        """Soft 17 against a 5 still uses the soft probability, not a stand."""
        assert hit_rate(hand_of("AS", "6H"), "5D") == pytest.approx(0.30, abs=TOLERANCE)

    def test_weak_dealer_hard_17_stands(self):
        assert hit_rate(hand_of("10S", "7H"), "5D") == 0.0
        assert hit_rate(hand_of("10S", "8H"), "2D") == 0.0

    def test_weak_dealer_stiff_hand(self):
        """13-16 against 2-6 hits about 20% of the time."""
        for specs in (("10S", "3H"), ("10S", "6H")):
            assert hit_rate(hand_of(*specs), "6D") == pytest.approx(0.20, abs=TOLERANCE)

    def test_weak_dealer_12(self):
        """12 against 2-6 is a coin flip."""
        assert hit_rate(hand_of("10S", "2H"), "3D") == pytest.approx(0.50, abs=TOLERANCE)

    def test_strong_dealer_stiff_hand(self):
        """12-16 against 7-A hits about 85% of the time."""
        for up_card in ("7D", "KD", "AD"):
            assert hit_rate(hand_of("10S", "5H"), up_card) == pytest.approx(0.85, abs=TOLERANCE)

    def test_strong_dealer_17_18(self):
        """Hard 17-18 against 7-A hits about 25% of the time."""
        assert hit_rate(hand_of("10S", "8H"), "9D") == pytest.approx(0.25, abs=TOLERANCE)

    def test_uses_supplied_rng(self):
        """Same seed, same sequence of decisions."""
        hand = hand_of("10S", "5H")
        up = Card.from_string("KD")
        rng_a, rng_b = Random(5), Random(5)
        seq_a = [player_decision(hand, hand.value, up, rng_a) for _ in range(50)]
        seq_b = [player_decision(hand, hand.value, up, rng_b) for _ in range(50)]
        assert seq_a == seq_b
        assert set(seq_a) == {Action.HIT, Action.STAND}


class TestGenerateBet:
    """Tests for computer seat betting."""

    def test_picks_a_standard_amount(self, rng):
        for _ in range(200):
            assert generate_bet(1000, rng) in BET_AMOUNTS

    def test_uses_every_amount_when_rich(self, rng):
        assert {generate_bet(1000, rng) for _ in range(500)} == set(BET_AMOUNTS)

    def test_only_affordable_amounts(self, rng):
        assert {generate_bet(30, rng) for _ in range(500)} == {10, 25}

    def test_all_in_when_short(self, rng):
        """Below the smallest amount the seat bets everything."""
        assert generate_bet(7, rng) == 7
        assert generate_bet(1, rng) == 1
