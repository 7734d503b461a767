"""Heuristic play and betting for computer seats, plus the dealer rule."""

from enum import Enum
from random import Random
from typing import Iterable

from blackjack.cards import Card
from blackjack.hand import card_value, is_soft

# Chip amounts a computer seat picks from when betting
BET_AMOUNTS: tuple[int, ...] = (10, 25, 50, 100)

DEALER_STANDS_ON = 17

# Hit probabilities for the player heuristic
SOFT_17_18_HIT = 0.30
WEAK_DEALER_STIFF_HIT = 0.20  # 13-16 against 2-6
WEAK_DEALER_12_HIT = 0.50
STRONG_DEALER_STIFF_HIT = 0.85  # 12-16 against 7-A
STRONG_DEALER_17_18_HIT = 0.25


class Action(Enum):
    """Possible actions on a turn."""

    HIT = "hit"
    STAND = "stand"

    def __str__(self) -> str:
        return self.value


def _hit_with(probability: float, rng: Random) -> Action:
    """Hit with the given probability, otherwise stand."""
    return Action.HIT if rng.random() < probability else Action.STAND


def dealer_decision(score: int) -> Action:
    """Dealer hits on 16 or less and stands on any 17, soft or hard."""
    return Action.HIT if score < DEALER_STANDS_ON else Action.STAND


def player_decision(
    hand: Iterable[Card],
    score: int,
    dealer_up_card: Card,
    rng: Random,
) -> Action:
    """
    Choose hit or stand for a computer seat.

    A simplified basic strategy with some noise. Rules are checked in
    order: 19+ stands, 11 or less hits, soft 17-18 mostly stands, and
    everything else depends on whether the dealer shows a weak (2-6) or
    strong (7-A) card.

    Args:
        hand: The seat's cards
        score: The hand total
        dealer_up_card: The dealer's face-up card
        rng: Random source for the probabilistic branches

    Returns:
        The chosen action
    """
    if score >= 19:
        return Action.STAND
    if score <= 11:
        return Action.HIT

    if is_soft(hand) and 17 <= score <= 18:
        return _hit_with(SOFT_17_18_HIT, rng)

    dealer_value = card_value(dealer_up_card)

    if 2 <= dealer_value <= 6:
        if score >= 17:
            return Action.STAND
        if score >= 13:
            return _hit_with(WEAK_DEALER_STIFF_HIT, rng)
        return _hit_with(WEAK_DEALER_12_HIT, rng)

    if score <= 16:
        return _hit_with(STRONG_DEALER_STIFF_HIT, rng)
    return _hit_with(STRONG_DEALER_17_18_HIT, rng)


def generate_bet(chips: int, rng: Random) -> int:
    """
    Pick a bet for a computer seat.

    Chooses uniformly among the affordable standard amounts, or goes
    all-in when even the smallest is out of reach.
    """
    affordable = [amount for amount in BET_AMOUNTS if amount <= chips]
    if not affordable:
        return chips
    return rng.choice(affordable)
