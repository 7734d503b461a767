"""Final ranking of the seats at a table."""

from dataclasses import dataclass

from blackjack.game.state import GameMode
from blackjack.game.table import TableState


@dataclass(frozen=True)
class Standing:
    """One row of the ranking."""

    rank: int
    seat_index: int
    name: str
    value: float


def standings(table: TableState) -> list[Standing]:
    """
    Rank the non-dealer seats by chips (betting) or points, highest first.

    Tied seats share a rank and the next rank is skipped (1, 1, 3).
    """
    betting = table.game_mode == GameMode.BETTING
    entries = [
        (index, seat.name, seat.chips if betting else seat.points)
        for index, seat in table.players()
    ]
    # Stable sort keeps table order among ties
    entries.sort(key=lambda entry: entry[2], reverse=True)

    ranking: list[Standing] = []
    for position, (index, name, value) in enumerate(entries):
        if ranking and ranking[-1].value == value:
            rank = ranking[-1].rank
        else:
            rank = position + 1
        ranking.append(Standing(rank=rank, seat_index=index, name=name, value=value))
    return ranking
