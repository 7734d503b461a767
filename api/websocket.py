"""WebSocket endpoint streaming table snapshots."""

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from api.routes.table import table_state_response
from api.session import TableSession, get_table_registry

logger = logging.getLogger(__name__)

router = APIRouter()


def _state_message(session: TableSession) -> dict[str, Any]:
    return {
        "type": "state_update",
        "state": table_state_response(session).model_dump(),
    }


def _error_message(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}


async def _handle_message(session: TableSession, message: dict[str, Any]) -> dict[str, Any] | None:
    """
    Apply one client message to the table.

    Returns:
        A message to send back, or None when the resulting snapshot
        reaches the client through the render stream
    """
    orchestrator = session.orchestrator
    msg_type = message.get("type")

    if msg_type == "get_state":
        return _state_message(session)

    if msg_type == "bet":
        seat_index = message.get("seat_index")
        amount = message.get("amount")
        if not isinstance(seat_index, int) or not isinstance(amount, int):
            return _error_message("Bet needs an integer seat_index and amount")
        if not orchestrator.submit_bet(seat_index, amount):
            return _error_message("Invalid bet")
        return None

    if msg_type == "action":
        seat_index = message.get("seat_index")
        action = message.get("action")
        if action not in ("hit", "stand"):
            return _error_message(f"Unknown action: {action}")
        if not isinstance(seat_index, int) or not orchestrator.submit_action(seat_index, action):
            return _error_message(f"Cannot {action} now")
        return None

    if msg_type == "pause":
        if not orchestrator.pause():
            return _error_message("Cannot pause now")
        return None

    if msg_type == "resume":
        if not orchestrator.resume():
            return _error_message("Table is not paused")
        return None

    if msg_type == "next_round":
        if orchestrator.start_round() is None:
            return _error_message("Cannot start a round now")
        return None

    if msg_type == "restart":
        await orchestrator.restart()
        return None

    if msg_type == "quit":
        await orchestrator.quit()
        return None

    return _error_message(f"Unknown message type: {msg_type}")


@router.websocket("/table/{table_id}")
async def table_websocket(websocket: WebSocket, table_id: str) -> None:
    """
    WebSocket endpoint for real-time table updates.

    Messages from client:
    - {"type": "bet", "seat_index": 0, "amount": 25}
    - {"type": "action", "seat_index": 0, "action": "hit"|"stand"}
    - {"type": "pause"} / {"type": "resume"}
    - {"type": "next_round"} / {"type": "restart"} / {"type": "quit"}
    - {"type": "get_state"}

    Messages to client:
    - {"type": "state_update", "state": {...}}
    - {"type": "error", "message": "..."}
    """
    session = await get_table_registry().get(table_id)
    if session is None:
        await websocket.close(code=4404)
        return

    await websocket.accept()
    queue = session.subscribe()

    async def forward_snapshots() -> None:
        """Send a state update for every render."""
        while True:
            await queue.get()
            # Coalesce a burst of renders into one message
            while not queue.empty():
                queue.get_nowait()
            await websocket.send_json(_state_message(session))

    sender_task = asyncio.create_task(forward_snapshots())

    try:
        await websocket.send_json(_state_message(session))
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_json(_error_message("Malformed message"))
                continue
            if not isinstance(message, dict):
                await websocket.send_json(_error_message("Malformed message"))
                continue

            reply = await _handle_message(session, message)
            if reply is not None:
                await websocket.send_json(reply)

    except WebSocketDisconnect:
        logger.debug("Client left table %s", table_id)
    finally:
        sender_task.cancel()
        try:
            await sender_task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.warning("Snapshot stream for table %s ended with an error", table_id, exc_info=True)
        session.unsubscribe(queue)
