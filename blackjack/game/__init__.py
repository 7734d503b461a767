"""Round engine, table state and turn orchestration."""

from blackjack.game.events import GameEvent, EventType, EventEmitter
from blackjack.game.state import (
    GameMode,
    HitResult,
    Phase,
    SeatResult,
    SeatStatus,
    SeatType,
)
from blackjack.game.table import SeatConfig, TableConfig, TableSnapshot, TableState
from blackjack.game.engine import RoundEngine, Settlement
from blackjack.game.orchestrator import (
    PacingDelays,
    PauseGate,
    TurnOrchestrator,
    no_pacing,
    sleep_pacer,
)
from blackjack.game.standings import Standing, standings

__all__ = [
    "GameEvent",
    "EventType",
    "EventEmitter",
    "GameMode",
    "HitResult",
    "Phase",
    "SeatResult",
    "SeatStatus",
    "SeatType",
    "SeatConfig",
    "TableConfig",
    "TableSnapshot",
    "TableState",
    "RoundEngine",
    "Settlement",
    "PacingDelays",
    "PauseGate",
    "TurnOrchestrator",
    "no_pacing",
    "sleep_pacer",
    "Standing",
    "standings",
]
