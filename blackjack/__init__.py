"""Multi-seat blackjack table engine - UI-agnostic."""

from blackjack.cards import Card, Shoe, Rank, Suit, fresh_deck, shuffle
from blackjack.hand import Hand, card_value, is_soft, score, visible_score

__all__ = [
    "Card",
    "Shoe",
    "Rank",
    "Suit",
    "fresh_deck",
    "shuffle",
    "Hand",
    "card_value",
    "is_soft",
    "score",
    "visible_score",
]
