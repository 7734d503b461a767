"""Decision policy for computer-controlled seats and the dealer."""

from blackjack.strategy.policy import (
    Action,
    BET_AMOUNTS,
    dealer_decision,
    generate_bet,
    player_decision,
)

__all__ = [
    "Action",
    "BET_AMOUNTS",
    "dealer_decision",
    "generate_bet",
    "player_decision",
]
