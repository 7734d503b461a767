"""Table configuration, seats and the authoritative table state."""

from dataclasses import dataclass, field, replace
from typing import Iterator

from blackjack.cards import Card, Shoe
from blackjack.hand import Hand
from blackjack.game.state import GameMode, Phase, SeatResult, SeatStatus, SeatType

DEFAULT_STARTING_CHIPS = 1000
DEFAULT_STARTING_POINTS = 0.0
DEFAULT_ROUNDS = 5
MAX_SEATS = 6


@dataclass(frozen=True)
class SeatConfig:
    """Configuration of one non-dealer seat."""

    type: SeatType = SeatType.COMPUTER

    @property
    def is_human(self) -> bool:
        return self.type == SeatType.HUMAN


@dataclass(frozen=True)
class TableConfig:
    """
    Game configuration, fixed when the table is created.

    Seats are listed in table order; the dealer is added after them.
    """

    seat_configs: tuple[SeatConfig, ...] = (SeatConfig(SeatType.HUMAN),)
    game_mode: GameMode = GameMode.BETTING
    rounds_target: int = DEFAULT_ROUNDS
    starting_points: float | None = None
    starting_chips: int | None = None

    def __post_init__(self) -> None:
        """Validate the configuration."""
        object.__setattr__(self, "seat_configs", tuple(self.seat_configs))
        if not 1 <= len(self.seat_configs) <= MAX_SEATS:
            raise ValueError(f"A table needs between 1 and {MAX_SEATS} seats")
        if self.rounds_target < 1:
            raise ValueError("rounds_target must be at least 1")
        if self.starting_chips is not None and self.starting_chips < 1:
            raise ValueError("starting_chips must be positive")

    @property
    def chips(self) -> int:
        """Starting chips per seat (0 in points mode)."""
        if self.game_mode != GameMode.BETTING:
            return 0
        return self.starting_chips or DEFAULT_STARTING_CHIPS

    @property
    def points(self) -> float:
        """Starting points per seat (0 in betting mode)."""
        if self.game_mode != GameMode.POINTS:
            return 0.0
        if self.starting_points is None:
            return DEFAULT_STARTING_POINTS
        return float(self.starting_points)


@dataclass
class Seat:
    """A seat at the table, including the dealer's."""

    name: str
    is_human: bool = False
    is_dealer: bool = False
    hand: Hand = field(default_factory=Hand)
    chips: int = 0
    points: float = 0.0
    current_bet: int = 0
    status: SeatStatus = SeatStatus.PLAYING
    result: SeatResult | None = None
    last_delta: float = 0

    def reset_for_round(self) -> None:
        """Clear everything that only lives for one round."""
        self.hand.clear()
        self.current_bet = 0
        self.status = SeatStatus.PLAYING
        self.result = None
        self.last_delta = 0


@dataclass(frozen=True)
class SeatView:
    """Read-only copy of a seat for renderers."""

    index: int
    name: str
    is_human: bool
    is_dealer: bool
    cards: tuple[Card, ...]
    chips: int
    points: float
    current_bet: int
    status: SeatStatus
    result: SeatResult | None
    last_delta: float
    value: int
    visible_value: int
    is_soft: bool
    is_out: bool
    is_active: bool


@dataclass(frozen=True)
class TableSnapshot:
    """Read-only copy of the whole table for renderers."""

    phase: Phase
    round: int
    rounds_target: int
    game_mode: GameMode
    current_turn_index: int
    dealer_index: int
    dealer_hole_card_skipped: bool
    cards_remaining: int
    is_game_over: bool
    seats: tuple[SeatView, ...]

    @property
    def dealer(self) -> SeatView:
        return self.seats[self.dealer_index]


@dataclass
class TableState:
    """
    The single source of truth for a table.

    Only the round engine mutates it. Everything else reads snapshots.
    """

    game_mode: GameMode
    rounds_target: int
    shoe: Shoe
    seats: list[Seat]
    human_indices: list[int]
    phase: Phase = Phase.SETUP
    current_turn_index: int = -1
    round: int = 0
    dealer_hole_card_skipped: bool = False

    @classmethod
    def create(cls, config: TableConfig, shoe: Shoe) -> "TableState":
        """Build the seats in configured order with the dealer appended last."""
        seats: list[Seat] = []
        human_indices: list[int] = []

        for i, seat_config in enumerate(config.seat_configs):
            if seat_config.is_human:
                human_indices.append(i)
                name = f"Player {i + 1}"
            else:
                name = f"Computer {i + 1}"
            seats.append(
                Seat(
                    name=name,
                    is_human=seat_config.is_human,
                    chips=config.chips,
                    points=config.points,
                )
            )

        # The house pool mirrors a seat's starting stack
        seats.append(Seat(name="Dealer", is_dealer=True, chips=config.chips))

        return cls(
            game_mode=config.game_mode,
            rounds_target=config.rounds_target,
            shoe=shoe,
            seats=seats,
            human_indices=human_indices,
        )

    @property
    def dealer_index(self) -> int:
        return len(self.seats) - 1

    @property
    def dealer(self) -> Seat:
        return self.seats[self.dealer_index]

    @property
    def computer_indices(self) -> list[int]:
        return [
            i for i, seat in enumerate(self.seats)
            if not seat.is_human and not seat.is_dealer
        ]

    def players(self) -> Iterator[tuple[int, Seat]]:
        """Iterate over (index, seat) for every non-dealer seat."""
        for i, seat in enumerate(self.seats):
            if not seat.is_dealer:
                yield i, seat

    def is_out(self, index: int) -> bool:
        """Check if a seat has run out of chips and sits out (betting mode)."""
        seat = self.seats[index]
        return (
            self.game_mode == GameMode.BETTING
            and not seat.is_dealer
            and seat.chips <= 0
        )

    def active_players(self) -> list[int]:
        """Indices of the non-dealer seats taking part in this round."""
        return [i for i, _ in self.players() if not self.is_out(i)]

    @property
    def is_game_over(self) -> bool:
        """
        Check if the game has ended.

        The game ends after the target number of rounds, or in betting
        mode once no human seat has chips left. Tables without human
        seats only end by round count.
        """
        if self.round >= self.rounds_target:
            return True
        if self.game_mode == GameMode.BETTING and self.human_indices:
            return not any(self.seats[i].chips > 0 for i in self.human_indices)
        return False

    def total_chips(self) -> int:
        """Sum of chips over every seat, dealer included."""
        return sum(seat.chips for seat in self.seats)

    def snapshot(self) -> TableSnapshot:
        """Return an immutable copy of the table for readers."""
        return TableSnapshot(
            phase=self.phase,
            round=self.round,
            rounds_target=self.rounds_target,
            game_mode=self.game_mode,
            current_turn_index=self.current_turn_index,
            dealer_index=self.dealer_index,
            dealer_hole_card_skipped=self.dealer_hole_card_skipped,
            cards_remaining=self.shoe.cards_remaining,
            is_game_over=self.is_game_over,
            seats=tuple(self._seat_view(i) for i in range(len(self.seats))),
        )

    def _seat_view(self, index: int) -> SeatView:
        seat = self.seats[index]
        return SeatView(
            index=index,
            name=seat.name,
            is_human=seat.is_human,
            is_dealer=seat.is_dealer,
            cards=tuple(replace(card) for card in seat.hand.cards),
            chips=seat.chips,
            points=seat.points,
            current_bet=seat.current_bet,
            status=seat.status,
            result=seat.result,
            last_delta=seat.last_delta,
            value=seat.hand.value,
            visible_value=seat.hand.visible_value,
            is_soft=seat.hand.is_soft,
            is_out=self.is_out(index),
            is_active=index == self.current_turn_index,
        )
