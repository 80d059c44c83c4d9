from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pygame.math import Vector2


@dataclass(frozen=True)
class Environment:
    """Per-tick inputs from the host: viewport extent, tick length and pointer.

    The world is centred on the origin, spanning ``[-width / 2, width / 2]`` on x
    and ``[-height / 2, height / 2]`` on y. ``pointer`` is ``None`` when there is
    no pointer over the world.
    """

    width: float
    height: float
    dt: float
    pointer: Optional[Vector2] = None

    @property
    def half_width(self) -> float:
        return self.width * 0.5

    @property
    def half_height(self) -> float:
        return self.height * 0.5
