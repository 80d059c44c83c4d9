from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional, Sequence

from pygame.math import Vector2

from ..sim.core.config import SimulationConfig
from ..sim.core.environment import Environment
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "population",
    "neighbor_checks",
    "avg_speed",
    "max_speed",
    "tick_ms",
]

_DETAILED_HEADER = _BASIC_HEADER + [
    "occupied_cells",
    "avg_agents_per_cell",
    "neighbor_checks_per_agent",
    "tick_ms_per_agent",
    "polarization",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.neighbor_checks,
        f"{metrics.average_speed:.4f}",
        f"{metrics.max_speed:.4f}",
        f"{tick_ms:.3f}",
    ]


def _polarization(world: World) -> float:
    """Length of the mean unit heading: 1.0 when every agent flies the same way, near 0 when disordered."""
    sum_x = 0.0
    sum_y = 0.0
    count = 0
    for agent in world.agents:
        speed = agent.velocity.length()
        if speed <= 1e-9:
            continue
        sum_x += agent.velocity.x / speed
        sum_y += agent.velocity.y / speed
        count += 1
    if count == 0:
        return 0.0
    return math.hypot(sum_x, sum_y) / count


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    population = metrics.population
    occupied = metrics.occupied_cells
    return _format_basic_row(metrics, tick_ms) + [
        occupied,
        f"{(population / occupied if occupied > 0 else 0.0):.4f}",
        f"{(metrics.neighbor_checks / population if population > 0 else 0.0):.4f}",
        f"{(tick_ms / population if population > 0 else 0.0):.4f}",
        f"{_polarization(world):.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "basic",
    summary_path: Optional[Path] = None,
    config: Optional[SimulationConfig] = None,
    num_agents: Optional[int] = None,
    pointer: Optional[Sequence[float]] = None,
) -> World:
    config = config if config is not None else SimulationConfig()
    if seed is not None:
        config.seed = seed
    if num_agents is not None:
        config.num_agents = num_agents
    world = World(config)

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    environment = Environment(
        width=config.world_width,
        height=config.world_height,
        dt=config.time_step,
        pointer=Vector2(pointer[0], pointer[1]) if pointer is not None else None,
    )

    tick_ms_series: list[float] = []
    neighbor_checks_series: list[float] = []
    speed_series: list[float] = []

    csv_file = None
    writer = None
    try:
        if log_path:
            csv_file = Path(log_path).open("w", newline="")
            writer = csv.writer(csv_file)
            writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

        for tick in range(steps):
            metrics = world.step(environment, tick)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            tick_ms_series.append(tick_ms)
            neighbor_checks_series.append(float(metrics.neighbor_checks))
            speed_series.append(metrics.average_speed)
            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    tick_stats = _summary_stats(tick_ms_series)
    logger.info(
        "ran %d ticks with %d agents (seed=%d): avg %.3f ms/tick, p99 %.3f ms",
        steps,
        len(world.agents),
        config.seed,
        tick_stats["avg"],
        tick_stats["p99"],
    )

    if summary_path:
        summary = {
            "steps": steps,
            "seed": config.seed,
            "agents": len(world.agents),
            "boundary_policy": config.boundary_policy,
            "neighbor_index": config.neighbor_index,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "tick_ms": tick_stats,
            "neighbor_checks": _summary_stats(neighbor_checks_series),
            "average_speed": _summary_stats(speed_series),
            "final_polarization": _polarization(world),
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Headless flocking simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file with simulation options")
    parser.add_argument("--agents", type=int, default=None, help="Override the number of agents")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="basic",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--pointer",
        type=float,
        nargs=2,
        metavar=("X", "Y"),
        default=None,
        help="Hold a pointer at this world position for the whole run.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = SimulationConfig.from_yaml(args.config) if args.config else None
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        config=config,
        num_agents=args.agents,
        pointer=args.pointer,
    )


if __name__ == "__main__":
    main()
