"""Card and Shoe classes for a single-deck blackjack table."""

from dataclasses import dataclass, field
from enum import Enum, auto
from random import Random
from typing import Iterable, Iterator

# Shoe is reshuffled at round start when fewer cards than this remain.
RESHUFFLE_THRESHOLD = 15

DECK_SIZE = 52


class Suit(Enum):
    """Card suits."""

    SPADES = auto()
    HEARTS = auto()
    DIAMONDS = auto()
    CLUBS = auto()

    def __str__(self) -> str:
        symbols = {
            Suit.SPADES: "♠",
            Suit.HEARTS: "♥",
            Suit.DIAMONDS: "♦",
            Suit.CLUBS: "♣",
        }
        return symbols[self]


class Rank(Enum):
    """Card ranks with blackjack values."""

    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13

    def __str__(self) -> str:
        if 2 <= self.value <= 10:
            return str(self.value)
        return {
            Rank.ACE: "A",
            Rank.JACK: "J",
            Rank.QUEEN: "Q",
            Rank.KING: "K",
        }[self]

    @property
    def blackjack_value(self) -> int:
        """Return the blackjack point value (Ace = 11, face cards = 10)."""
        if self == Rank.ACE:
            return 11
        if self.value >= 10:
            return 10
        return self.value

    @property
    def is_ace(self) -> bool:
        """Check if this rank is an Ace."""
        return self == Rank.ACE


@dataclass(unsafe_hash=True, slots=True)
class Card:
    """
    Playing card.

    Rank and suit never change. ``face_up`` is assigned when the card is
    dealt and flipped once when the dealer reveals the hole card, so it
    takes no part in equality or hashing.
    """

    rank: Rank
    suit: Suit
    face_up: bool = field(default=True, compare=False, hash=False)

    def __str__(self) -> str:
        if not self.face_up:
            return "??"
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        state = "" if self.face_up else ", face_down"
        return f"Card({self.rank.name}, {self.suit.name}{state})"

    @property
    def value(self) -> int:
        """Return the blackjack point value."""
        return self.rank.blackjack_value

    @property
    def is_ace(self) -> bool:
        """Check if this card is an Ace."""
        return self.rank.is_ace

    def reveal(self) -> None:
        """Turn the card face up."""
        self.face_up = True

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Create a card from a string like '2♣', 'AS', 'Kh'."""
        s = s.strip().upper()
        if len(s) < 2:
            raise ValueError(f"Invalid card string: {s}")

        rank_str = s[:-1]
        suit_str = s[-1]

        rank_map = {
            "A": Rank.ACE,
            "2": Rank.TWO,
            "3": Rank.THREE,
            "4": Rank.FOUR,
            "5": Rank.FIVE,
            "6": Rank.SIX,
            "7": Rank.SEVEN,
            "8": Rank.EIGHT,
            "9": Rank.NINE,
            "10": Rank.TEN,
            "T": Rank.TEN,
            "J": Rank.JACK,
            "Q": Rank.QUEEN,
            "K": Rank.KING,
        }

        suit_map = {
            "S": Suit.SPADES,
            "♠": Suit.SPADES,
            "H": Suit.HEARTS,
            "♥": Suit.HEARTS,
            "D": Suit.DIAMONDS,
            "♦": Suit.DIAMONDS,
            "C": Suit.CLUBS,
            "♣": Suit.CLUBS,
        }

        if rank_str not in rank_map:
            raise ValueError(f"Invalid rank: {rank_str}")
        if suit_str not in suit_map:
            raise ValueError(f"Invalid suit: {suit_str}")

        return cls(rank_map[rank_str], suit_map[suit_str])


def fresh_deck() -> list[Card]:
    """Return a new ordered 52-card deck, every card face up."""
    return [Card(rank, suit) for suit in Suit for rank in Rank]


def shuffle(cards: list[Card], rng: Random) -> list[Card]:
    """Shuffle cards in place (Fisher-Yates) and return the same list."""
    rng.shuffle(cards)
    return cards


class Shoe:
    """
    A single-deck shoe.

    Cards are drawn from the end of the list. The shoe never runs dry:
    drawing from an empty shoe swaps in a freshly shuffled deck first.
    """

    def __init__(
        self,
        rng: Random | None = None,
        cards: Iterable[Card] | None = None,
    ) -> None:
        """
        Initialize the shoe.

        Args:
            rng: Random number generator for shuffling
            cards: Explicit card order to start from (last card is drawn
                first). A shuffled fresh deck is used when omitted.
        """
        self._rng = rng or Random()
        self._cards: list[Card] = []
        self.reshuffle_count = 0
        if cards is None:
            self.reshuffle()
        else:
            self._cards = list(cards)

    def reshuffle(self) -> None:
        """Replace the shoe contents with a freshly shuffled deck."""
        self._cards = shuffle(fresh_deck(), self._rng)
        self.reshuffle_count += 1

    def draw(self, face_up: bool = True) -> Card:
        """Draw a card, reshuffling first if the shoe is empty."""
        if not self._cards:
            self.reshuffle()
        card = self._cards.pop()
        card.face_up = face_up
        return card

    @property
    def needs_reshuffle(self) -> bool:
        """Check if the shoe has dropped below the round-start threshold."""
        return len(self._cards) < RESHUFFLE_THRESHOLD

    @property
    def cards_remaining(self) -> int:
        """Return the number of cards remaining."""
        return len(self._cards)

    @property
    def cards_dealt(self) -> int:
        """Return the number of cards dealt since the last full deck."""
        return max(DECK_SIZE - len(self._cards), 0)

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards)
