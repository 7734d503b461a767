"""Pytest fixtures for blackjack table tests."""

import os

# Real-time pacing would make every orchestrated round take seconds
os.environ.setdefault("PACING_ENABLED", "false")

import pytest
from random import Random

from blackjack.cards import Card, Shoe, fresh_deck
from blackjack.hand import Hand
from blackjack.game import GameMode, RoundEngine, SeatConfig, SeatType, TableConfig


def stacked_shoe(*specs: str) -> Shoe:
    """
    A shoe that deals the given cards first, in the given order.

    A full deck sits underneath so the shoe stays above the reshuffle
    threshold at round start.
    """
    order = [Card.from_string(s) for s in specs]
    return Shoe(cards=fresh_deck() + list(reversed(order)))


def make_table(*seat_types: SeatType, **kwargs) -> TableConfig:
    """Table config with the given seat types (one human seat if none)."""
    if not seat_types:
        seat_types = (SeatType.HUMAN,)
    return TableConfig(seat_configs=tuple(SeatConfig(t) for t in seat_types), **kwargs)


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return Random(42)


@pytest.fixture
def stack():
    """Factory for shoes with a known dealing order."""
    return stacked_shoe


@pytest.fixture
def table():
    """Factory for table configs by seat type."""
    return make_table


@pytest.fixture
def engine(rng):
    """Engine for a single human seat in betting mode."""
    return RoundEngine(make_table(SeatType.HUMAN), rng=rng)


@pytest.fixture
def points_engine(rng):
    """Engine for two computer seats in points mode."""
    return RoundEngine(
        make_table(SeatType.COMPUTER, SeatType.COMPUTER, game_mode=GameMode.POINTS),
        rng=rng,
    )


@pytest.fixture
def empty_hand():
    """An empty hand."""
    return Hand()


@pytest.fixture
def blackjack_hand():
    """A natural blackjack hand."""
    return Hand([Card.from_string("AS"), Card.from_string("KH")])


@pytest.fixture
def soft_17_hand():
    """A soft 17 hand (A-6)."""
    return Hand([Card.from_string("AS"), Card.from_string("6H")])


@pytest.fixture
def hard_16_hand():
    """A hard 16 hand (10-6)."""
    return Hand([Card.from_string("10S"), Card.from_string("6H")])


@pytest.fixture
def bust_hand():
    """A busted hand."""
    return Hand([Card.from_string("10S"), Card.from_string("6H"), Card.from_string("KC")])
