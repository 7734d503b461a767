"""Hand scoring for blackjack."""

from dataclasses import dataclass, field
from typing import Iterable, Iterator

from blackjack.cards import Card

BLACKJACK = 21


def card_value(card: Card) -> int:
    """Return the point value of a single card (Ace counts 11)."""
    return card.value


def _reduce(cards: Iterable[Card]) -> tuple[int, int]:
    """
    Total the cards, demoting Aces from 11 to 1 while the total is over 21.

    Returns:
        (total, aces still counted as 11)
    """
    total = 0
    aces = 0

    for card in cards:
        total += card_value(card)
        if card.is_ace:
            aces += 1

    # Each Ace can be demoted at most once
    while total > BLACKJACK and aces > 0:
        total -= 10
        aces -= 1

    return total, aces


def score(cards: Iterable[Card]) -> int:
    """
    Calculate the best total for a set of cards.

    Returns the highest total that doesn't bust, or the lowest bust
    total. Totals over 21 are returned as-is.
    """
    return _reduce(cards)[0]


def visible_score(cards: Iterable[Card]) -> int:
    """Calculate the total of the face-up cards only."""
    return score(card for card in cards if card.face_up)


def is_soft(cards: Iterable[Card]) -> bool:
    """Check if at least one Ace still counts as 11 without busting."""
    total, aces = _reduce(cards)
    return aces > 0 and total <= BLACKJACK


@dataclass
class Hand:
    """The cards held by one seat. The score is always computed."""

    cards: list[Card] = field(default_factory=list)

    def add_card(self, card: Card) -> None:
        """Add a card to the hand."""
        self.cards.append(card)

    def clear(self) -> None:
        """Remove all cards from the hand."""
        self.cards.clear()

    @property
    def value(self) -> int:
        """Best total of every card, including face-down ones."""
        return score(self.cards)

    @property
    def visible_value(self) -> int:
        """Total of the face-up cards."""
        return visible_score(self.cards)

    @property
    def is_soft(self) -> bool:
        """Check if the hand is soft (has an ace counted as 11)."""
        return is_soft(self.cards)

    @property
    def is_blackjack(self) -> bool:
        """Check if the hand is a natural blackjack (21 with 2 cards)."""
        return len(self.cards) == 2 and self.value == BLACKJACK

    @property
    def is_busted(self) -> bool:
        """Check if the hand has busted (value > 21)."""
        return self.value > BLACKJACK

    @property
    def all_face_up(self) -> bool:
        """Check if every card in the hand is visible."""
        return all(card.face_up for card in self.cards)

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)

    def __str__(self) -> str:
        cards_str = " ".join(str(card) for card in self.cards)
        value_str = f"({self.visible_value})"
        if not self.all_face_up:
            value_str = f"({self.visible_value} + ?)"
        elif self.is_blackjack:
            value_str = "(BLACKJACK)"
        elif self.is_busted:
            value_str = "(BUST)"
        elif self.is_soft:
            value_str = f"(soft {self.value})"
        return f"{cards_str} {value_str}"

    def __repr__(self) -> str:
        return f"Hand({self.cards!r}, value={self.value})"
