"""
Column ordering and position-change markers for the board view.
"""

import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from retroboard.core.schemas.card import COLUMN_ORDER, Card, ColumnType

UP = "up"
DOWN = "down"

Position = Tuple[ColumnType, int]


def sort_column(cards: Iterable[Card]) -> List[Card]:
    """Most votes first; ties keep their incoming order."""
    return sorted(cards, key=lambda card: -card.votes)


def group_columns(cards: Sequence[Card]) -> Dict[ColumnType, List[Card]]:
    columns: Dict[ColumnType, List[Card]] = {column: [] for column in COLUMN_ORDER}
    for card in cards:
        columns[ColumnType(card.column_type)].append(card)
    return {column: sort_column(items) for column, items in columns.items()}


def position_map(cards: Sequence[Card]) -> Dict[str, Position]:
    positions: Dict[str, Position] = {}
    for column, items in group_columns(cards).items():
        for rank, card in enumerate(items):
            positions[card.id] = (column, rank)
    return positions


def diff_positions(previous: Dict[str, Position], current: Dict[str, Position]) -> Dict[str, str]:
    """
    Cards that moved within their column since ``previous``.

    Moving to another column or appearing for the first time is not a move.
    """
    moves: Dict[str, str] = {}
    for card_id, (column, rank) in current.items():
        before = previous.get(card_id)
        if before is None or before[0] != column or before[1] == rank:
            continue
        moves[card_id] = UP if rank < before[1] else DOWN
    return moves


class PositionTracker:
    """
    Remembers the last rendered positions and exposes transient markers.

    Markers from one update replace the previous set and disappear
    ``duration`` seconds after they were set.
    """

    def __init__(self, duration: float = 0.4, clock: Optional[Callable[[], float]] = None):
        self.duration = duration
        self._clock = clock or time.monotonic
        self._positions: Dict[str, Position] = {}
        self._markers: Dict[str, str] = {}
        self._markers_set_at: Optional[float] = None

    def update(self, cards: Sequence[Card]) -> Dict[str, str]:
        """Record a new card list and return the moves it produced."""
        if not cards:
            return {}
        current = position_map(cards)
        moves = diff_positions(self._positions, current) if self._positions else {}
        self._positions = current
        if moves:
            self._markers = moves
            self._markers_set_at = self._clock()
        return moves

    def markers(self) -> Dict[str, str]:
        if self._markers_set_at is not None and self._clock() - self._markers_set_at >= self.duration:
            self._markers = {}
            self._markers_set_at = None
        return dict(self._markers)

    def marker(self, card_id: str) -> Optional[str]:
        return self.markers().get(card_id)
