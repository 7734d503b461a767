"""Asynchronous turn orchestrator driving a round engine."""

import asyncio
import logging
from dataclasses import dataclass
from random import Random
from typing import Awaitable, Callable

from blackjack.game.engine import RoundEngine, Settlement
from blackjack.game.events import EventType
from blackjack.game.standings import Standing
from blackjack.game.state import HitResult, Phase, SeatStatus
from blackjack.strategy.policy import Action, dealer_decision, generate_bet, player_decision

logger = logging.getLogger(__name__)

# Wait N milliseconds between steps
Pacer = Callable[[int], Awaitable[None]]
RenderCallback = Callable[[], None]


async def sleep_pacer(ms: int) -> None:
    """Pace the table in real time."""
    await asyncio.sleep(ms / 1000)


async def no_pacing(ms: int) -> None:
    """Skip the delay but still let other tasks run."""
    await asyncio.sleep(0)


@dataclass(frozen=True)
class PacingDelays:
    """Presentation delays in milliseconds. None of them affect the outcome."""

    deal_ms: int = 300
    ai_think_ms: int = 1200
    dealer_flip_ms: int = 600
    dealer_hit_ms: int = 1000
    turn_end_ms: int = 800
    settle_ms: int = 600


class PauseGate:
    """
    Global pause checkpoint.

    While paused, the single coroutine that reaches ``wait`` parks on its
    own future until ``resume`` (or ``cancel``). A second simultaneous
    waiter is a sequencing bug and raises.
    """

    def __init__(self) -> None:
        self._paused = False
        self._waiter: asyncio.Future[None] | None = None

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def has_waiter(self) -> bool:
        return self._waiter is not None and not self._waiter.done()

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> bool:
        """Unpause and release the parked waiter, if any."""
        if not self._paused:
            return False
        self._paused = False
        if self.has_waiter:
            self._waiter.set_result(None)  # type: ignore[union-attr]
        self._waiter = None
        return True

    def cancel(self) -> None:
        """Unpause and cancel the parked waiter without releasing it."""
        self._paused = False
        if self.has_waiter:
            self._waiter.cancel()  # type: ignore[union-attr]
        self._waiter = None

    async def wait(self) -> None:
        """Return at once when not paused, otherwise block until resumed."""
        # Re-check after every wake-up: the table may be paused again
        # before this task gets to run.
        while self._paused:
            if self.has_waiter:
                raise RuntimeError("Pause gate already has a pending waiter")

            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._waiter = waiter
            try:
                await waiter
            finally:
                if self._waiter is waiter:
                    self._waiter = None


class TurnOrchestrator:
    """
    Runs rounds on a RoundEngine as a cooperatively scheduled task.

    A round goes betting → dealing → player turns → dealer turn →
    settlement. It suspends on human input futures, on the pacing hook,
    and on the pause gate before every card, AI decision, dealer flip and
    dealer hit. Only one round task exists at a time; ``quit`` and
    ``restart`` cancel it together with every outstanding waiter.
    """

    def __init__(
        self,
        engine: RoundEngine,
        rng: Random | None = None,
        render: RenderCallback | None = None,
        pacer: Pacer | None = None,
        delays: PacingDelays | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            engine: The engine owning the table
            rng: Random source for computer decisions and bets
            render: Called after every state change
            pacer: Async "wait N ms" hook (real-time sleep by default)
            delays: Milliseconds passed to the pacer per step
        """
        self.engine = engine
        self._rng = rng or Random()
        self._render_callback = render
        self._pacer = pacer or sleep_pacer
        self.delays = delays or PacingDelays()
        self.gate = PauseGate()

        self._task: asyncio.Task[list[Settlement]] | None = None
        self._bet_waiters: dict[int, asyncio.Future[int]] = {}
        self._action_waiter: tuple[int, asyncio.Future[Action]] | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        """Check if a round task is in flight."""
        return self._task is not None and not self._task.done()

    @property
    def paused(self) -> bool:
        return self.gate.paused

    @property
    def awaiting_bets(self) -> list[int]:
        """Human seats the table is waiting on for a bet."""
        return sorted(i for i, f in self._bet_waiters.items() if not f.done())

    @property
    def awaiting_action(self) -> int | None:
        """Human seat the table is waiting on for hit or stand."""
        if self._action_waiter is None or self._action_waiter[1].done():
            return None
        return self._action_waiter[0]

    def _render(self) -> None:
        if self._render_callback is not None:
            self._render_callback()

    async def _pace(self, ms: int) -> None:
        await self._pacer(ms)

    # ------------------------------------------------------------------
    # Round control
    # ------------------------------------------------------------------

    def start_round(self) -> asyncio.Task[list[Settlement]] | None:
        """
        Open the next round and schedule it.

        Computer seats bet straight away; the rest of the round runs as a
        task on the running loop.

        Returns:
            The round task, or None if no round could be started
        """
        if self.is_running:
            logger.debug("Round already running")
            return None
        if not self.engine.start_round():
            return None

        self._place_computer_bets()
        self._render()

        self._task = asyncio.get_running_loop().create_task(self._run_round())
        self._task.add_done_callback(self._on_round_done)
        return self._task

    async def play_round(self) -> list[Settlement]:
        """
        Play one round to settlement.

        Returns:
            The settlements, or an empty list if the round did not start
            or was cancelled by quit/restart
        """
        task = self.start_round()
        if task is None:
            return []
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task.cancelled():
            return []
        return task.result()

    async def play_game(self) -> list[Standing]:
        """Play rounds until the game is over and return the final ranking."""
        while not self.engine.is_game_over:
            await self.play_round()
            if self.engine.phase != Phase.RESULTS:
                break
        return self.engine.standings()

    def _on_round_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.info("Round %d cancelled", self.engine.round)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Round %d failed", self.engine.round, exc_info=exc)

    async def _run_round(self) -> list[Settlement]:
        try:
            await self._collect_human_bets()
            await self._deal()
            await self._player_turns()
            return await self._dealer_turn()
        finally:
            self._clear_waiters()

    # ------------------------------------------------------------------
    # Pause / quit / restart
    # ------------------------------------------------------------------

    def pause(self) -> bool:
        """Hold the round at its next pause checkpoint."""
        if not self.is_running or self.engine.phase == Phase.RESULTS:
            return False
        if self.gate.paused:
            return False
        self.gate.pause()
        logger.info("Game paused in %s", self.engine.phase)
        self.engine.events.emit_new(EventType.GAME_PAUSED, phase=self.engine.phase.name)
        self._render()
        return True

    def resume(self) -> bool:
        """Release the pause checkpoint."""
        if not self.gate.resume():
            return False
        logger.info("Game resumed")
        self.engine.events.emit_new(EventType.GAME_RESUMED, phase=self.engine.phase.name)
        self._render()
        return True

    async def quit(self) -> None:
        """Cancel everything outstanding and return the table to setup."""
        await self._cancel()
        self.engine.reset()
        logger.info("Game quit")
        self._render()

    async def restart(self) -> asyncio.Task[list[Settlement]] | None:
        """Cancel everything outstanding and start a fresh game."""
        await self._cancel()
        self.engine.reset()
        logger.info("Game restarted")
        return self.start_round()

    async def _cancel(self) -> None:
        self.gate.cancel()
        for waiter in self._bet_waiters.values():
            waiter.cancel()
        if self._action_waiter is not None:
            self._action_waiter[1].cancel()

        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._clear_waiters()

    def _clear_waiters(self) -> None:
        self._bet_waiters.clear()
        self._action_waiter = None

    # ------------------------------------------------------------------
    # Human input channel
    # ------------------------------------------------------------------

    def submit_bet(self, index: int, amount: int) -> bool:
        """
        Confirm a human seat's bet.

        Rejected without any state change unless the seat is waiting to
        bet and the amount is positive and covered by its chips.
        """
        waiter = self._bet_waiters.get(index)
        if waiter is None or waiter.done():
            logger.debug("Seat %d is not waiting for a bet", index)
            return False
        if not self.engine.place_bet(index, amount):
            return False

        waiter.set_result(amount)
        self._render()
        return True

    def submit_action(self, index: int, action: Action | str) -> bool:
        """Hit or stand for the human seat whose turn it is."""
        try:
            action = Action(action)
        except ValueError:
            logger.debug("Unknown action %r for seat %d", action, index)
            return False

        if self.awaiting_action != index or not self.engine.is_turn(index):
            logger.debug("Seat %d cannot %s now", index, action)
            return False

        self._action_waiter[1].set_result(action)  # type: ignore[index]
        return True

    # ------------------------------------------------------------------
    # Round steps
    # ------------------------------------------------------------------

    def _place_computer_bets(self) -> None:
        for index in self.engine.pending_bets:
            seat = self.engine.seat(index)
            if not seat.is_human:
                self.engine.place_bet(index, generate_bet(seat.chips, self._rng))

    async def _collect_human_bets(self) -> None:
        humans = [i for i in self.engine.pending_bets if self.engine.seat(i).is_human]
        if humans:
            loop = asyncio.get_running_loop()
            for index in humans:
                self._bet_waiters[index] = loop.create_future()
            self._render()
            # Seats confirm independently; the phase waits for all of them
            await asyncio.gather(*(self._bet_waiters[i] for i in humans))
            self._bet_waiters.clear()

        self.engine.begin_dealing()
        self._render()

    async def _deal(self) -> None:
        await self._pace(self.delays.deal_ms)
        for index, face_up in self.engine.deal_plan():
            await self.gate.wait()
            self.engine.deal_card(index, face_up)
            self._render()
            await self._pace(self.delays.deal_ms)

        self.engine.check_naturals()
        self._render()

    async def _player_turns(self) -> None:
        order = self.engine.begin_player_turns()
        self._render()

        for index in order:
            if self.engine.status(index) != SeatStatus.PLAYING:
                continue
            self.engine.start_turn(index)
            self._render()

            if self.engine.seat(index).is_human:
                await self._human_turn(index)
            else:
                await self._computer_turn(index)

    async def _await_action(self, index: int) -> Action:
        waiter: asyncio.Future[Action] = asyncio.get_running_loop().create_future()
        self._action_waiter = (index, waiter)
        self._render()
        try:
            return await waiter
        finally:
            self._action_waiter = None

    async def _human_turn(self, index: int) -> None:
        while self.engine.is_turn(index):
            action = await self._await_action(index)
            if action == Action.HIT:
                outcome = self.engine.hit(index)
                self._render()
                if outcome != HitResult.OK:
                    await self._pace(self.delays.turn_end_ms)
            else:
                self.engine.stand(index)
                self._render()

    async def _computer_turn(self, index: int) -> None:
        up_card = self.engine.dealer_up_card()
        while self.engine.is_turn(index):
            await self.gate.wait()
            await self._pace(self.delays.ai_think_ms)

            hand = self.engine.seat(index).hand
            decision = player_decision(hand, hand.value, up_card, self._rng)
            if decision == Action.HIT:
                self.engine.hit(index)
            else:
                self.engine.stand(index)
            self._render()

    async def _dealer_turn(self) -> list[Settlement]:
        if not self.engine.begin_dealer_turn():
            # Everyone busted: nobody needs to see the hole card
            self._render()
            await self._pace(self.delays.turn_end_ms)
            return self._settle()
        self._render()

        await self.gate.wait()
        await self._pace(self.delays.dealer_flip_ms)
        self.engine.reveal_dealer_cards()
        self._render()
        await self._pace(self.delays.dealer_flip_ms)

        if self.engine.check_dealer_blackjack():
            self._render()
            await self._pace(self.delays.turn_end_ms)
            return self._settle()

        dealer = self.engine.dealer_index
        while True:
            if dealer_decision(self.engine.score(dealer)) == Action.STAND:
                self.engine.dealer_stand()
                self._render()
                break

            await self.gate.wait()
            await self._pace(self.delays.dealer_hit_ms)
            outcome = self.engine.dealer_hit()
            self._render()
            if outcome != HitResult.OK:
                break

        await self._pace(self.delays.settle_ms)
        return self._settle()

    def _settle(self) -> list[Settlement]:
        settlements = self.engine.settle()
        self._render()
        return settlements
