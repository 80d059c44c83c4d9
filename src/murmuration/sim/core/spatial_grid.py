from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Iterable, List, Tuple

from pygame.math import Vector2

from .config import ConfigError

if TYPE_CHECKING:
    from .agent import Agent

logger = logging.getLogger(__name__)

CellKey = Tuple[int, int]


@dataclass(slots=True)
class GridEntry:
    agent_id: int
    position: Vector2
    velocity: Vector2


class SpatialHashGrid:
    """Uniform cell partition of agent snapshots, rebuilt every tick.

    With ``wrap`` enabled and the grid sized, cell indices are taken relative to
    the world's minimum corner and reduced modulo ``grid_width``/``grid_height``
    so that a query near one edge also sees the cells along the opposite edge.
    Until the grid is sized, absolute ``floor(position / cell_size)`` keys are
    used for both insertion and lookup.
    """

    def __init__(self, cell_size: float, wrap: bool = False) -> None:
        if not math.isfinite(cell_size) or cell_size <= 0.0:
            raise ConfigError(f"cell_size must be a positive number, got {cell_size!r}")
        self._cell_size = float(cell_size)
        self._wrap = wrap
        self._cells: Dict[CellKey, List[GridEntry]] = {}
        self._active_keys: List[CellKey] = []
        self._count = 0
        self._world_width = 0.0
        self._world_height = 0.0
        self._grid_width = 0
        self._grid_height = 0
        self._columns_partial = False
        self._rows_partial = False

    def __len__(self) -> int:
        return self._count

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def grid_width(self) -> int:
        return self._grid_width

    @property
    def grid_height(self) -> int:
        return self._grid_height

    @property
    def wrap_active(self) -> bool:
        return self._wrap and self._grid_width > 0 and self._grid_height > 0

    @property
    def occupied_cells(self) -> int:
        return len(self._active_keys)

    def resize(self, width: float, height: float) -> None:
        if width == self._world_width and height == self._world_height:
            return
        if self._count:
            # Keys depend on the sizing, so entries from before a resize would be unreachable.
            self.clear()
        self._world_width = width
        self._world_height = height
        self._grid_width, self._columns_partial = self._cells_spanning(width)
        self._grid_height, self._rows_partial = self._cells_spanning(height)
        logger.debug(
            "grid sized to %dx%d cells of %.3f (wrap=%s)",
            self._grid_width,
            self._grid_height,
            self._cell_size,
            self.wrap_active,
        )

    def clear(self) -> None:
        for key in self._active_keys:
            bucket = self._cells.get(key)
            if bucket:
                bucket.clear()
        self._active_keys.clear()
        self._count = 0

    def insert(self, agent_id: int, position: Vector2, velocity: Vector2) -> None:
        key = self._cell_key(position)
        bucket = self._cells.get(key)
        if bucket is None:
            bucket = []
            self._cells[key] = bucket
            self._active_keys.append(key)
        elif not bucket:
            # Bucket exists but was cleared at the start of this tick; mark it active again.
            self._active_keys.append(key)
        bucket.append(GridEntry(agent_id, Vector2(position), Vector2(velocity)))
        self._count += 1

    def rebuild(self, agents: Iterable["Agent"]) -> None:
        self.clear()
        for agent in agents:
            self.insert(agent.id, agent.position, agent.velocity)

    def query_neighborhood(self, position: Vector2) -> List[GridEntry]:
        """Entries in the 3x3 block of cells around ``position``, the caller's own entry included."""
        found: List[GridEntry] = []
        cells = self._cells
        for key in self._neighborhood_keys(position):
            bucket = cells.get(key)
            if bucket:
                found.extend(bucket)
        return found

    def _cells_spanning(self, extent: float) -> tuple[int, bool]:
        if not extent > 0.0:
            return 0, False
        count = int(math.ceil(extent / self._cell_size))
        partial = count * self._cell_size - extent > 1e-9 * self._cell_size
        return count, partial

    def _cell_key(self, position: Vector2) -> CellKey:
        cell_size = self._cell_size
        if not self.wrap_active:
            return (int(position.x // cell_size), int(position.y // cell_size))
        col = int((position.x + self._world_width * 0.5) // cell_size) % self._grid_width
        row = int((position.y + self._world_height * 0.5) // cell_size) % self._grid_height
        return (col, row)

    def _neighborhood_keys(self, position: Vector2) -> List[CellKey]:
        col, row = self._cell_key(position)
        if not self.wrap_active:
            return [(col + dx, row + dy) for dx in (-1, 0, 1) for dy in (-1, 0, 1)]
        cols = self._wrapped_span(col, self._grid_width, self._columns_partial)
        rows = self._wrapped_span(row, self._grid_height, self._rows_partial)
        return [(c, r) for c in cols for r in rows]

    @staticmethod
    def _wrapped_span(index: int, count: int, partial: bool) -> List[int]:
        span = [(index - 1) % count, index, (index + 1) % count]
        if partial:
            # The last column is narrower than a cell, so a seam-adjacent cell must
            # also reach the cell two steps across the seam.
            if index == 0:
                span.append((count - 2) % count)
            elif index == count - 2:
                span.append(0)
        return list(dict.fromkeys(span))


class AllPairsIndex:
    """Neighbor index that hands every agent to every query."""

    def __init__(self) -> None:
        self._entries: List[GridEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def occupied_cells(self) -> int:
        return 1 if self._entries else 0

    def resize(self, width: float, height: float) -> None:
        return None

    def clear(self) -> None:
        self._entries = []

    def rebuild(self, agents: Iterable["Agent"]) -> None:
        self._entries = [
            GridEntry(agent.id, Vector2(agent.position), Vector2(agent.velocity)) for agent in agents
        ]

    def query_neighborhood(self, position: Vector2) -> List[GridEntry]:
        return list(self._entries)
