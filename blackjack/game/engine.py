"""Round engine: the phase state machine for a multi-seat blackjack table."""

import logging
import math
from dataclasses import dataclass
from random import Random

from transitions import Machine

from blackjack.cards import Card, Shoe
from blackjack.hand import BLACKJACK
from blackjack.game.events import EventEmitter, EventType
from blackjack.game.standings import Standing, standings
from blackjack.game.state import GameMode, HitResult, Phase, SeatResult, SeatStatus
from blackjack.game.table import Seat, TableConfig, TableSnapshot, TableState

logger = logging.getLogger(__name__)

BLACKJACK_PAYOUT = 1.5

POINTS_FOR_RESULT: dict[SeatResult, float] = {
    SeatResult.WIN: 1.0,
    SeatResult.LOSE: -1.0,
    SeatResult.DRAW: 0.5,
}


@dataclass(frozen=True)
class Settlement:
    """Outcome of one seat's hand and the chips or points it moved."""

    seat_index: int
    result: SeatResult
    delta: float


class RoundEngine:
    """
    Blackjack round engine using a state machine.

    Owns the table state and is the only thing that mutates it. The
    operations are fine-grained (one card, one hit) so that a driver can
    suspend between any two of them. Misuse by a caller (acting out of
    turn, bad bets) is rejected with a falsy return and an
    INVALID_ACTION event; firing a phase trigger from the wrong phase
    raises ``transitions.MachineError``.
    """

    # State machine states
    STATES = [p.name.lower() for p in Phase]

    # State machine transitions
    TRANSITIONS = [
        {"trigger": "open_betting", "source": ["setup", "results"], "dest": "betting"},
        {"trigger": "open_dealing", "source": ["setup", "results", "betting"], "dest": "dealing"},
        {"trigger": "open_player_turns", "source": "dealing", "dest": "player_turn"},
        {"trigger": "open_dealer_turn", "source": "player_turn", "dest": "dealer_turn"},
        {"trigger": "close_round", "source": "dealer_turn", "dest": "results"},
        {"trigger": "reset_table", "source": "*", "dest": "setup"},
    ]

    def __init__(
        self,
        config: TableConfig | None = None,
        rng: Random | None = None,
        shoe: Shoe | None = None,
    ) -> None:
        """
        Initialize a new table.

        Args:
            config: Seats, mode and round target (one human seat if omitted)
            rng: Random number generator for shuffling
            shoe: Pre-built shoe, e.g. a stacked one for replays
        """
        self.config = config or TableConfig()
        self._rng = rng or Random()
        self.events = EventEmitter()
        self.table = TableState.create(self.config, shoe or Shoe(rng=self._rng))

        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial="setup",
            auto_transitions=False,
            model_attribute="_machine_state",
            after_state_change="_sync_phase",
        )

        self.events.emit_new(
            EventType.GAME_STARTED,
            seats=len(self.table.seats) - 1,
            mode=self.table.game_mode.value,
            rounds_target=self.table.rounds_target,
        )

    def _sync_phase(self) -> None:
        self.table.phase = Phase[self._machine_state.upper()]  # type: ignore

    def _reject(self, message: str, **data: object) -> None:
        logger.debug("Rejected: %s %s", message, data)
        self.events.emit_new(EventType.INVALID_ACTION, message=message, **data)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        """Get current phase as enum."""
        return self.table.phase

    @property
    def round(self) -> int:
        return self.table.round

    @property
    def cards_remaining(self) -> int:
        return self.table.shoe.cards_remaining

    @property
    def is_game_over(self) -> bool:
        return self.table.is_game_over

    @property
    def dealer_index(self) -> int:
        return self.table.dealer_index

    def seat(self, index: int) -> Seat:
        return self.table.seats[index]

    def score(self, index: int) -> int:
        """True score of a seat's hand, hole card included."""
        return self.table.seats[index].hand.value

    def visible_score(self, index: int) -> int:
        """Score of a seat's face-up cards."""
        return self.table.seats[index].hand.visible_value

    def status(self, index: int) -> SeatStatus:
        return self.table.seats[index].status

    def result(self, index: int) -> SeatResult | None:
        return self.table.seats[index].result

    def dealer_up_card(self) -> Card | None:
        """The dealer's first face-up card."""
        return next((c for c in self.table.dealer.hand if c.face_up), None)

    def snapshot(self) -> TableSnapshot:
        return self.table.snapshot()

    def standings(self) -> list[Standing]:
        return standings(self.table)

    # ------------------------------------------------------------------
    # Round lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Throw the table away and rebuild it from the configuration."""
        self.table = TableState.create(self.config, Shoe(rng=self._rng))
        self.reset_table()
        logger.info("Table reset")
        self.events.emit_new(
            EventType.GAME_STARTED,
            seats=len(self.table.seats) - 1,
            mode=self.table.game_mode.value,
            rounds_target=self.table.rounds_target,
        )

    def start_round(self) -> bool:
        """
        Clear the previous round and open the next one.

        Returns:
            True if a round was started
        """
        if self.phase not in (Phase.SETUP, Phase.RESULTS):
            self._reject("Round already in progress", phase=self.phase.name)
            return False
        if self.is_game_over:
            self._reject("Game is over", round=self.table.round)
            return False

        table = self.table
        table.round += 1
        table.current_turn_index = -1
        table.dealer_hole_card_skipped = False
        for seat in table.seats:
            seat.reset_for_round()

        if table.shoe.needs_reshuffle:
            table.shoe.reshuffle()
            self.events.emit_new(EventType.SHOE_SHUFFLED, reason="threshold")

        if table.game_mode == GameMode.BETTING:
            self.open_betting()
        else:
            self.open_dealing()

        logger.info("Round %d/%d started", table.round, table.rounds_target)
        self.events.emit_new(
            EventType.ROUND_STARTED,
            round=table.round,
            cards_remaining=table.shoe.cards_remaining,
        )
        return True

    # ------------------------------------------------------------------
    # Betting
    # ------------------------------------------------------------------

    def betting_seats(self) -> list[int]:
        """Seats that must bet this round (betting mode only)."""
        if self.table.game_mode != GameMode.BETTING:
            return []
        return self.table.active_players()

    @property
    def pending_bets(self) -> list[int]:
        """Seats that still owe a bet."""
        if self.phase != Phase.BETTING:
            return []
        return [i for i in self.betting_seats() if self.table.seats[i].current_bet <= 0]

    @property
    def betting_complete(self) -> bool:
        return self.phase == Phase.BETTING and not self.pending_bets

    def place_bet(self, index: int, amount: int) -> bool:
        """
        Place a seat's bet for this round.

        Args:
            index: Seat index
            amount: Whole chips, more than 0 and no more than the seat holds

        Returns:
            True if the bet was accepted
        """
        if self.phase != Phase.BETTING:
            self._reject("Cannot bet in current phase", seat=index, phase=self.phase.name)
            return False
        if index not in self.betting_seats():
            self._reject("Seat cannot bet", seat=index)
            return False

        seat = self.table.seats[index]
        if seat.current_bet > 0:
            self._reject("Bet already placed", seat=index)
            return False
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            self._reject("Bet must be a positive whole amount", seat=index, amount=amount)
            return False
        if amount > seat.chips:
            logger.debug("Seat %d cannot cover bet %d (chips %d)", index, amount, seat.chips)
            self.events.emit_new(
                EventType.INSUFFICIENT_FUNDS,
                seat=index,
                required=amount,
                available=seat.chips,
            )
            return False

        seat.current_bet = amount
        self.events.emit_new(EventType.BET_PLACED, seat=index, amount=amount)
        return True

    # ------------------------------------------------------------------
    # Dealing
    # ------------------------------------------------------------------

    def begin_dealing(self) -> bool:
        """Close betting. Points-mode rounds are already dealing."""
        if self.phase == Phase.DEALING:
            return True
        if not self.betting_complete:
            self._reject("Betting is not complete", pending=self.pending_bets)
            return False
        self.open_dealing()
        return True

    def deal_plan(self) -> list[tuple[int, bool]]:
        """
        Order of the initial deal as (seat index, face up) pairs.

        Two passes over the seats in play, dealer last in each pass. The
        dealer's second card is the face-down hole card.
        """
        plan: list[tuple[int, bool]] = []
        for deal_pass in range(2):
            for i, seat in enumerate(self.table.seats):
                if self.table.is_out(i):
                    continue
                plan.append((i, not (seat.is_dealer and deal_pass == 1)))
        return plan

    def _draw(self, face_up: bool) -> Card:
        shoe = self.table.shoe
        before = shoe.reshuffle_count
        card = shoe.draw(face_up)
        if shoe.reshuffle_count != before:
            logger.warning("Shoe ran out mid-round; reshuffled a fresh deck")
            self.events.emit_new(EventType.SHOE_SHUFFLED, reason="exhausted")
        return card

    def deal_card(self, index: int, face_up: bool = True) -> Card | None:
        """Deal one card of the initial deal to a seat."""
        if self.phase != Phase.DEALING:
            self._reject("Cannot deal in current phase", phase=self.phase.name)
            return None

        card = self._draw(face_up)
        seat = self.table.seats[index]
        seat.hand.add_card(card)
        logger.debug("Dealt %s to seat %d", card, index)
        self.events.emit_new(
            EventType.CARD_DEALT,
            seat=index,
            card=str(card),
            visible_value=seat.hand.visible_value,
        )
        return card

    def check_naturals(self) -> list[int]:
        """Flag every non-dealer two-card 21 as blackjack."""
        naturals = []
        for i in self.table.active_players():
            seat = self.table.seats[i]
            if seat.hand.is_blackjack:
                seat.status = SeatStatus.BLACKJACK
                naturals.append(i)
                self.events.emit_new(EventType.PLAYER_BLACKJACK, seat=i)
        return naturals

    def deal_initial_cards(self) -> bool:
        """Run the whole initial deal in one step."""
        if not self.begin_dealing():
            return False
        for index, face_up in self.deal_plan():
            self.deal_card(index, face_up)
        self.check_naturals()
        return True

    # ------------------------------------------------------------------
    # Player turns
    # ------------------------------------------------------------------

    def begin_player_turns(self) -> list[int]:
        """Move to the player-turn phase and return the turn order."""
        self.open_player_turns()
        return self.turn_order()

    def turn_order(self) -> list[int]:
        """Non-dealer seats still to act, in table order."""
        return [
            i for i in self.table.active_players()
            if self.table.seats[i].status not in (SeatStatus.BLACKJACK, SeatStatus.BUST)
        ]

    def start_turn(self, index: int) -> bool:
        """Make a seat the active turn."""
        if self.phase != Phase.PLAYER_TURN:
            self._reject("Not the player-turn phase", seat=index)
            return False
        seat = self.table.seats[index]
        if seat.is_dealer or self.table.is_out(index) or seat.status != SeatStatus.PLAYING:
            self._reject("Seat cannot take a turn", seat=index)
            return False

        self.table.current_turn_index = index
        self.events.emit_new(EventType.TURN_STARTED, seat=index, hand_value=seat.hand.value)
        return True

    def is_turn(self, index: int) -> bool:
        """Check if a seat is the active turn and may still act."""
        return (
            self.phase == Phase.PLAYER_TURN
            and index == self.table.current_turn_index
            and self.table.seats[index].status == SeatStatus.PLAYING
        )

    def _hit_seat(self, index: int) -> HitResult:
        seat = self.table.seats[index]
        seat.hand.add_card(self._draw(True))
        value = seat.hand.value

        if value > BLACKJACK:
            seat.status = SeatStatus.BUST
            return HitResult.BUST
        # House rule: a hand stops as soon as it reaches 21
        if value == BLACKJACK:
            seat.status = SeatStatus.STANDING
            return HitResult.TWENTY_ONE
        return HitResult.OK

    def hit(self, index: int) -> HitResult | None:
        """
        Seat takes another card.

        Returns:
            What happened to the hand, or None if the seat may not act
        """
        if not self.is_turn(index):
            self._reject("Not this seat's turn", seat=index, action="hit")
            return None

        outcome = self._hit_seat(index)
        value = self.score(index)
        self.events.emit_new(EventType.PLAYER_HIT, seat=index, hand_value=value)
        if outcome == HitResult.BUST:
            self.events.emit_new(EventType.PLAYER_BUSTS, seat=index, hand_value=value)
        return outcome

    def stand(self, index: int) -> bool:
        """Seat keeps its hand."""
        if not self.is_turn(index):
            self._reject("Not this seat's turn", seat=index, action="stand")
            return False

        self.table.seats[index].status = SeatStatus.STANDING
        self.events.emit_new(EventType.PLAYER_STAND, seat=index, hand_value=self.score(index))
        return True

    # ------------------------------------------------------------------
    # Dealer turn
    # ------------------------------------------------------------------

    def all_players_bust(self) -> bool:
        """Check if every seat in the round busted."""
        return all(
            self.table.seats[i].status == SeatStatus.BUST
            for i in self.table.active_players()
        )

    def begin_dealer_turn(self) -> bool:
        """
        Move to the dealer's turn.

        Returns:
            False if the dealer does not play because everyone busted. The
            hole card then stays face down.
        """
        self.open_dealer_turn()
        self.table.current_turn_index = self.table.dealer_index

        if self.all_players_bust():
            self.table.dealer_hole_card_skipped = True
            self.events.emit_new(EventType.DEALER_SKIPPED)
            return False
        return True

    def _dealer_can_act(self) -> bool:
        return (
            self.phase == Phase.DEALER_TURN
            and not self.table.dealer_hole_card_skipped
            and self.table.dealer.status == SeatStatus.PLAYING
        )

    def reveal_dealer_cards(self) -> bool:
        """Turn the hole card face up."""
        if not self._dealer_can_act():
            self._reject("Dealer cannot reveal now", phase=self.phase.name)
            return False

        dealer = self.table.dealer
        for card in dealer.hand:
            card.reveal()
        self.events.emit_new(
            EventType.DEALER_REVEALS,
            cards=[str(c) for c in dealer.hand],
            hand_value=dealer.hand.value,
        )
        return True

    def check_dealer_blackjack(self) -> bool:
        """Flag a revealed dealer natural. Ends the dealer's play if true."""
        if not self._dealer_can_act():
            return False
        dealer = self.table.dealer
        if dealer.hand.is_blackjack:
            dealer.status = SeatStatus.BLACKJACK
            self.events.emit_new(EventType.DEALER_BLACKJACK)
            return True
        return False

    def dealer_hit(self) -> HitResult | None:
        """Dealer takes another card."""
        if not self._dealer_can_act():
            self._reject("Dealer cannot hit now", phase=self.phase.name)
            return None

        outcome = self._hit_seat(self.table.dealer_index)
        value = self.table.dealer.hand.value
        self.events.emit_new(EventType.DEALER_HITS, hand_value=value)
        if outcome == HitResult.BUST:
            self.events.emit_new(EventType.DEALER_BUSTS, hand_value=value)
        return outcome

    def dealer_stand(self) -> bool:
        """Dealer keeps its hand."""
        if not self._dealer_can_act():
            self._reject("Dealer cannot stand now", phase=self.phase.name)
            return False
        self.table.dealer.status = SeatStatus.STANDING
        self.events.emit_new(EventType.DEALER_STANDS, hand_value=self.table.dealer.hand.value)
        return True

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    @staticmethod
    def _outcome(seat: Seat, dealer: Seat) -> SeatResult:
        if seat.status == SeatStatus.BUST:
            return SeatResult.LOSE
        if dealer.status == SeatStatus.BUST:
            return SeatResult.WIN
        if seat.status == SeatStatus.BLACKJACK and dealer.status != SeatStatus.BLACKJACK:
            return SeatResult.WIN
        if dealer.status == SeatStatus.BLACKJACK and seat.status != SeatStatus.BLACKJACK:
            return SeatResult.LOSE

        seat_value = seat.hand.value
        dealer_value = dealer.hand.value
        if seat_value > dealer_value:
            return SeatResult.WIN
        if seat_value < dealer_value:
            return SeatResult.LOSE
        return SeatResult.DRAW

    def _pay(self, seat: Seat, dealer: Seat) -> float:
        """Move chips or points for a settled seat and return its change."""
        if self.table.game_mode == GameMode.POINTS:
            delta = POINTS_FOR_RESULT[seat.result]  # type: ignore[index]
            seat.points += delta
            return delta

        if seat.result == SeatResult.WIN:
            if seat.status == SeatStatus.BLACKJACK:
                delta = math.floor(seat.current_bet * BLACKJACK_PAYOUT)
            else:
                delta = seat.current_bet
        elif seat.result == SeatResult.LOSE:
            delta = -seat.current_bet
        else:
            delta = 0

        # The house pool mirrors every transfer
        seat.chips += delta
        dealer.chips -= delta
        return delta

    def settle(self) -> list[Settlement]:
        """
        Decide every hand against the dealer and pay out.

        Settling twice without starting a new round raises MachineError.

        Returns:
            One settlement per seat that played this round
        """
        self.close_round()

        table = self.table
        dealer = table.dealer
        table.current_turn_index = -1
        if dealer.hand.value > BLACKJACK:
            dealer.status = SeatStatus.BUST

        outcome_events = {
            SeatResult.WIN: EventType.PLAYER_WINS,
            SeatResult.LOSE: EventType.PLAYER_LOSES,
            SeatResult.DRAW: EventType.PUSH,
        }

        settlements: list[Settlement] = []
        for i, seat in table.players():
            # Seats that sat the round out have no cards
            if not seat.hand.cards:
                continue
            seat.result = self._outcome(seat, dealer)
            seat.last_delta = self._pay(seat, dealer)
            settlements.append(Settlement(i, seat.result, seat.last_delta))
            self.events.emit_new(
                outcome_events[seat.result],
                seat=i,
                amount=seat.last_delta,
                hand_value=seat.hand.value,
            )

        logger.info(
            "Round %d settled: %s",
            table.round,
            ", ".join(f"{table.seats[s.seat_index].name}={s.result.value}({s.delta:+g})" for s in settlements),
        )
        self.events.emit_new(
            EventType.ROUND_ENDED,
            round=table.round,
            dealer_value=dealer.hand.value,
            results={s.seat_index: s.result.value for s in settlements},
        )

        if table.is_game_over:
            reason = "rounds_complete" if table.round >= table.rounds_target else "out_of_chips"
            logger.info("Game over after round %d (%s)", table.round, reason)
            self.events.emit_new(EventType.GAME_ENDED, reason=reason, round=table.round)

        return settlements
