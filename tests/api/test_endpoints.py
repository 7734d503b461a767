"""Tests for API endpoints."""

import asyncio
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from api.main import app
from api.routes.table import table_state_response
from api.session import TableSession
from blackjack.game import SeatConfig, SeatType, TableConfig
from blackjack.game.table import MAX_SEATS


@pytest_asyncio.fixture
async def client():
    """Create test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def new_table(client, **body) -> str:
    response = await client.post("/api/table/new", json=body)
    assert response.status_code == 200
    return response.json()["table_id"]


async def poll_state(client, table_id, predicate, attempts: int = 200) -> dict:
    """Fetch the state until the predicate holds."""
    for _ in range(attempts):
        response = await client.get("/api/table/state", headers={"X-Table-ID": table_id})
        assert response.status_code == 200
        state = response.json()
        if predicate(state):
            return state
        await asyncio.sleep(0)
    raise AssertionError(f"Table never reached the expected state: {state}")


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health check endpoint."""
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_new_table(client):
    """Test opening a table with the default single human seat."""
    table_id = await new_table(client)

    state = await poll_state(client, table_id, lambda s: s["awaiting_bets"] == [0])
    assert state["phase"] == "BETTING"
    assert state["round"] == 1
    assert state["game_mode"] == "betting"
    assert [s["name"] for s in state["seats"]] == ["Player 1", "Dealer"]
    assert state["seats"][0]["chips"] == 1000


@pytest.mark.asyncio
async def test_new_table_validation(client):
    """Test that bad table configurations are rejected."""
    response = await client.post("/api/table/new", json={"seats": []})
    assert response.status_code == 422

    response = await client.post("/api/table/new", json={"seats": ["human"] * (MAX_SEATS + 1)})
    assert response.status_code == 422

    response = await client.post("/api/table/new", json={"seats": ["robot"]})
    assert response.status_code == 422

    response = await client.post("/api/table/new", json={"rounds_target": 0})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_unknown_table(client):
    """Test that forged or missing table ids give 404."""
    response = await client.get("/api/table/state", headers={"X-Table-ID": "not-a-table"})
    assert response.status_code == 404

    response = await client.get("/api/table/state")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_full_round(client):
    """Bet, act, and read the results and standings."""
    table_id = await new_table(client, rounds_target=2)
    headers = {"X-Table-ID": table_id}
    await poll_state(client, table_id, lambda s: s["awaiting_bets"] == [0])

    response = await client.post("/api/table/bet", json={"seat_index": 0, "amount": 50}, headers=headers)
    assert response.status_code == 200
    assert response.json()["seats"][0]["current_bet"] == 50

    state = await poll_state(
        client, table_id,
        lambda s: s["awaiting_action"] == 0 or s["phase"] == "RESULTS",
    )
    if state["phase"] != "RESULTS":
        dealer = state["seats"][state["dealer_index"]]
        assert dealer["cards"][1] == {"rank": None, "suit": None, "value": None, "face_up": False}
        assert dealer["value"] is None

        response = await client.post("/api/table/action", json={"seat_index": 0, "action": "stand"}, headers=headers)
        assert response.status_code == 200

    state = await poll_state(client, table_id, lambda s: s["phase"] == "RESULTS")
    seat = state["seats"][0]
    assert seat["result"] in ("win", "lose", "draw")
    assert seat["chips"] == 1000 + seat["last_delta"]

    response = await client.get("/api/table/standings", headers=headers)
    assert response.status_code == 200
    assert response.json() == [
        {"rank": 1, "seat_index": 0, "name": "Player 1", "value": seat["chips"]},
    ]

    response = await client.get("/api/table/events", headers=headers)
    assert response.status_code == 200
    event_types = [e["event_type"] for e in response.json()]
    assert "ROUND_STARTED" in event_types
    assert "ROUND_ENDED" in event_types

    response = await client.post("/api/table/next-round", headers=headers)
    assert response.status_code == 200
    assert response.json()["round"] == 2


@pytest.mark.asyncio
async def test_invalid_bet(client):
    """Test placing bets the table cannot take."""
    table_id = await new_table(client)
    headers = {"X-Table-ID": table_id}
    await poll_state(client, table_id, lambda s: s["awaiting_bets"] == [0])

    response = await client.post("/api/table/bet", json={"seat_index": 0, "amount": 10000}, headers=headers)
    assert response.status_code == 400

    response = await client.post("/api/table/bet", json={"seat_index": 1, "amount": 10}, headers=headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_action_out_of_turn(client):
    """Test acting while the table waits for bets."""
    table_id = await new_table(client)
    headers = {"X-Table-ID": table_id}
    await poll_state(client, table_id, lambda s: s["awaiting_bets"] == [0])

    response = await client.post("/api/table/action", json={"seat_index": 0, "action": "hit"}, headers=headers)
    assert response.status_code == 400

    response = await client.post("/api/table/action", json={"seat_index": 0, "action": "split"}, headers=headers)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_next_round_while_running(client):
    table_id = await new_table(client)
    response = await client.post("/api/table/next-round", headers={"X-Table-ID": table_id})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_pause_resume(client):
    """Test the pause controls."""
    table_id = await new_table(client)
    headers = {"X-Table-ID": table_id}
    await poll_state(client, table_id, lambda s: s["awaiting_bets"] == [0])

    response = await client.post("/api/table/resume", headers=headers)
    assert response.json() == {"accepted": False}

    response = await client.post("/api/table/pause", headers=headers)
    assert response.json() == {"accepted": True}
    state = await poll_state(client, table_id, lambda s: True)
    assert state["paused"] is True

    response = await client.post("/api/table/resume", headers=headers)
    assert response.json() == {"accepted": True}


@pytest.mark.asyncio
async def test_quit_and_restart(client):
    """Test quitting to setup and restarting."""
    table_id = await new_table(client, seats=["human", "computer"])
    headers = {"X-Table-ID": table_id}
    await poll_state(client, table_id, lambda s: s["awaiting_bets"] == [0])

    response = await client.post("/api/table/quit", headers=headers)
    assert response.status_code == 200
    state = response.json()
    assert state["phase"] == "SETUP"
    assert state["round"] == 0
    assert state["awaiting_bets"] == []

    response = await client.post("/api/table/restart", headers=headers)
    assert response.status_code == 200
    assert response.json()["round"] == 1
    await poll_state(client, table_id, lambda s: s["awaiting_bets"] == [0])

    await client.post("/api/table/quit", headers=headers)


@pytest.mark.asyncio
async def test_computer_table_plays_itself(client):
    """A table of computer seats runs a round without input."""
    table_id = await new_table(client, seats=["computer", "computer"], game_mode="points")

    state = await poll_state(client, table_id, lambda s: s["phase"] == "RESULTS", attempts=500)

    assert state["game_mode"] == "points"
    for seat in state["seats"][:2]:
        assert seat["points"] in (-1.0, 0.5, 1.0)
        assert seat["chips"] == 0


def test_state_masks_hole_card(stack):
    """The hole card's identity and the dealer's true total stay hidden."""
    session = TableSession("table", TableConfig(seat_configs=(SeatConfig(SeatType.HUMAN),)))
    engine = session.engine
    engine.table.shoe = stack("10S", "AC", "9H", "KD")
    engine.start_round()
    engine.place_bet(0, 10)
    engine.deal_initial_cards()

    state = table_state_response(session)

    dealer = state.seats[state.dealer_index]
    assert dealer.cards[0].rank == "A"
    assert dealer.cards[0].suit == "clubs"
    assert dealer.cards[1].rank is None
    assert dealer.cards[1].face_up is False
    assert dealer.visible_value == 11
    assert dealer.value is None
    assert dealer.is_soft is None
    assert state.seats[0].value == 19

    engine.begin_player_turns()
    engine.start_turn(0)
    engine.stand(0)
    engine.begin_dealer_turn()
    engine.reveal_dealer_cards()

    dealer = table_state_response(session).seats[state.dealer_index]
    assert dealer.cards[1].rank == "K"
    assert dealer.value == 21
