"""Table phase, seat status and outcome enumerations."""

from enum import Enum, auto


class Phase(Enum):
    """
    Round phase state machine states.

    Flow: SETUP → [BETTING] → DEALING → PLAYER_TURN → DEALER_TURN → RESULTS

    BETTING only exists in betting mode. RESULTS loops back to BETTING or
    DEALING for the next round.
    """

    # Table built, no round played yet
    SETUP = auto()

    # Waiting for every seat with chips to place a bet
    BETTING = auto()

    # Two cards to every seat
    DEALING = auto()

    # Non-dealer seats act in table order
    PLAYER_TURN = auto()

    # Dealer reveals and plays
    DEALER_TURN = auto()

    # Round settled
    RESULTS = auto()

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()


class GameMode(Enum):
    """Scoring economy of a table."""

    BETTING = "betting"
    POINTS = "points"


class SeatType(Enum):
    """Who controls a seat."""

    HUMAN = "human"
    COMPUTER = "computer"


class SeatStatus(Enum):
    """Status of a seat's hand within a round."""

    PLAYING = auto()
    STANDING = auto()
    BUST = auto()
    BLACKJACK = auto()


class SeatResult(Enum):
    """Settled outcome of a seat's hand against the dealer."""

    WIN = "win"
    LOSE = "lose"
    DRAW = "draw"


class HitResult(Enum):
    """What happened to a hand after taking a card."""

    OK = auto()
    BUST = auto()
    TWENTY_ONE = auto()

