from __future__ import annotations

from typing import Iterable

from ..core.agent import Agent
from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    agents: Iterable[Agent],
    neighbor_checks: int,
    occupied_cells: int,
    duration_ms: float,
) -> TickMetrics:
    population = 0
    speed_sum = 0.0
    max_speed = 0.0
    for agent in agents:
        speed = agent.velocity.length()
        population += 1
        speed_sum += speed
        if speed > max_speed:
            max_speed = speed
    return TickMetrics(
        tick=tick,
        population=population,
        neighbor_checks=neighbor_checks,
        occupied_cells=occupied_cells,
        average_speed=0.0 if population == 0 else speed_sum / population,
        max_speed=max_speed,
        tick_duration_ms=duration_ms,
    )
