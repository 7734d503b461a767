"""Pydantic schemas for API requests and responses."""

from typing import Literal

from pydantic import BaseModel, Field

from blackjack.game.table import MAX_SEATS
from config import config


# Table schemas
class CreateTableRequest(BaseModel):
    """Request to open a table."""

    seats: list[Literal["human", "computer"]] = Field(
        default_factory=lambda: ["human"],
        min_length=1,
        max_length=MAX_SEATS,
        description="Seat types in table order; the dealer is added last",
    )
    game_mode: Literal["betting", "points"] = "betting"
    rounds_target: int = Field(default=config.game.default_rounds, ge=1)
    starting_chips: int | None = Field(default=None, ge=1)
    starting_points: float | None = None


class CreateTableResponse(BaseModel):
    """A newly opened table."""

    table_id: str


class BetRequest(BaseModel):
    """Request to confirm a human seat's bet."""

    seat_index: int = Field(..., ge=0)
    amount: int = Field(..., description="Bet amount")


class ActionRequest(BaseModel):
    """Request for a human seat's action."""

    seat_index: int = Field(..., ge=0)
    action: Literal["hit", "stand"]


class CardResponse(BaseModel):
    """Card representation. Face-down cards carry no rank or suit."""

    rank: str | None
    suit: str | None
    value: int | None
    face_up: bool


class SeatResponse(BaseModel):
    """Seat representation."""

    index: int
    name: str
    is_human: bool
    is_dealer: bool
    cards: list[CardResponse]
    visible_value: int
    value: int | None  # None while a card is face down
    is_soft: bool | None
    status: str
    result: str | None
    chips: int
    points: float
    current_bet: int
    last_delta: float
    is_out: bool
    is_active: bool


class TableStateResponse(BaseModel):
    """Current table state."""

    phase: str
    round: int
    rounds_target: int
    game_mode: str
    current_turn_index: int
    dealer_index: int
    dealer_hole_card_skipped: bool
    cards_remaining: int
    is_game_over: bool
    paused: bool
    awaiting_bets: list[int]
    awaiting_action: int | None
    seats: list[SeatResponse]


class StandingResponse(BaseModel):
    """One row of the ranking."""

    rank: int
    seat_index: int
    name: str
    value: float


class EventResponse(BaseModel):
    """A recorded game event."""

    event_type: str
    data: dict
    timestamp: str


class AcceptedResponse(BaseModel):
    """Outcome of a control request."""

    accepted: bool
