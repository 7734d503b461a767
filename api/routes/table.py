"""Table API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Header

from api.schemas import (
    AcceptedResponse,
    ActionRequest,
    BetRequest,
    CardResponse,
    CreateTableRequest,
    CreateTableResponse,
    EventResponse,
    SeatResponse,
    StandingResponse,
    TableStateResponse,
)
from api.session import TableSession, get_table_registry
from blackjack.cards import Card
from blackjack.game import GameMode, SeatConfig, SeatType, TableConfig
from blackjack.game.table import SeatView
from config import config

logger = logging.getLogger(__name__)

router = APIRouter()

TableId = Annotated[str, Header(alias="X-Table-ID")]


def table_config_from_request(request: CreateTableRequest) -> TableConfig:
    """Translate a create request into a table configuration."""
    starting_points = request.starting_points
    if starting_points is None:
        starting_points = config.game.starting_points
    return TableConfig(
        seat_configs=tuple(SeatConfig(SeatType(s)) for s in request.seats),
        game_mode=GameMode(request.game_mode),
        rounds_target=request.rounds_target,
        starting_chips=request.starting_chips or config.game.starting_chips,
        starting_points=starting_points,
    )


def card_response(card: Card) -> CardResponse:
    """Convert a Card to CardResponse, hiding face-down cards."""
    if not card.face_up:
        return CardResponse(rank=None, suit=None, value=None, face_up=False)
    return CardResponse(
        rank=str(card.rank),
        suit=card.suit.name.lower(),
        value=card.value,
        face_up=True,
    )


def seat_response(seat: SeatView) -> SeatResponse:
    """Convert a SeatView to SeatResponse without leaking the hole card."""
    all_visible = all(c.face_up for c in seat.cards)
    return SeatResponse(
        index=seat.index,
        name=seat.name,
        is_human=seat.is_human,
        is_dealer=seat.is_dealer,
        cards=[card_response(c) for c in seat.cards],
        visible_value=seat.visible_value,
        value=seat.value if all_visible else None,
        is_soft=seat.is_soft if all_visible else None,
        status=seat.status.name,
        result=seat.result.value if seat.result else None,
        chips=seat.chips,
        points=seat.points,
        current_bet=seat.current_bet,
        last_delta=seat.last_delta,
        is_out=seat.is_out,
        is_active=seat.is_active,
    )


def table_state_response(session: TableSession) -> TableStateResponse:
    """Convert a table session to a response."""
    snapshot = session.engine.snapshot()
    orchestrator = session.orchestrator
    return TableStateResponse(
        phase=snapshot.phase.name,
        round=snapshot.round,
        rounds_target=snapshot.rounds_target,
        game_mode=snapshot.game_mode.value,
        current_turn_index=snapshot.current_turn_index,
        dealer_index=snapshot.dealer_index,
        dealer_hole_card_skipped=snapshot.dealer_hole_card_skipped,
        cards_remaining=snapshot.cards_remaining,
        is_game_over=snapshot.is_game_over,
        paused=orchestrator.paused,
        awaiting_bets=orchestrator.awaiting_bets,
        awaiting_action=orchestrator.awaiting_action,
        seats=[seat_response(s) for s in snapshot.seats],
    )


async def _get_table(table_id: str) -> TableSession:
    """Look up a table or fail with 404."""
    registry = get_table_registry()
    session = await registry.get(table_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Unknown table")
    return session


@router.post("/new")
async def new_table(request: CreateTableRequest) -> CreateTableResponse:
    """Open a table and start its first round."""
    try:
        table_config = table_config_from_request(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    session = await get_table_registry().create(table_config)
    session.orchestrator.start_round()
    return CreateTableResponse(table_id=session.table_id)


@router.get("/state")
async def get_state(table_id: TableId) -> TableStateResponse:
    """Get current table state."""
    session = await _get_table(table_id)
    return table_state_response(session)


@router.post("/bet")
async def place_bet(request: BetRequest, table_id: TableId) -> TableStateResponse:
    """Confirm a human seat's bet."""
    session = await _get_table(table_id)

    if not session.orchestrator.submit_bet(request.seat_index, request.amount):
        raise HTTPException(status_code=400, detail="Invalid bet")

    return table_state_response(session)


@router.post("/action")
async def seat_action(request: ActionRequest, table_id: TableId) -> TableStateResponse:
    """Hit or stand for the active human seat."""
    session = await _get_table(table_id)

    if not session.orchestrator.submit_action(request.seat_index, request.action):
        raise HTTPException(status_code=400, detail=f"Cannot {request.action} now")

    return table_state_response(session)


@router.post("/pause")
async def pause(table_id: TableId) -> AcceptedResponse:
    """Pause the table at its next checkpoint."""
    session = await _get_table(table_id)
    return AcceptedResponse(accepted=session.orchestrator.pause())


@router.post("/resume")
async def resume(table_id: TableId) -> AcceptedResponse:
    """Resume a paused table."""
    session = await _get_table(table_id)
    return AcceptedResponse(accepted=session.orchestrator.resume())


@router.post("/next-round")
async def next_round(table_id: TableId) -> TableStateResponse:
    """Start the next round once the current one is settled."""
    session = await _get_table(table_id)

    if session.orchestrator.start_round() is None:
        raise HTTPException(status_code=400, detail="Cannot start a round now")

    return table_state_response(session)


@router.post("/restart")
async def restart(table_id: TableId) -> TableStateResponse:
    """Throw the current game away and start again with the same seats."""
    session = await _get_table(table_id)
    await session.orchestrator.restart()
    return table_state_response(session)


@router.post("/quit")
async def quit_table(table_id: TableId) -> TableStateResponse:
    """Cancel the game and return the table to setup."""
    session = await _get_table(table_id)
    await session.orchestrator.quit()
    return table_state_response(session)


@router.get("/standings")
async def get_standings(table_id: TableId) -> list[StandingResponse]:
    """Rank the seats by chips or points."""
    session = await _get_table(table_id)
    return [
        StandingResponse(
            rank=s.rank,
            seat_index=s.seat_index,
            name=s.name,
            value=s.value,
        )
        for s in session.engine.standings()
    ]


@router.get("/events")
async def get_events(table_id: TableId, limit: int = 100) -> list[EventResponse]:
    """Most recent game events, oldest first."""
    session = await _get_table(table_id)
    history = session.engine.events.history[-limit:] if limit > 0 else []
    return [EventResponse(**event.to_dict()) for event in history]
