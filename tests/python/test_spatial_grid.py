from __future__ import annotations

import random

import pytest
from pygame.math import Vector2

from murmuration.sim.core.agent import Agent
from murmuration.sim.core.config import ConfigError
from murmuration.sim.core.spatial_grid import AllPairsIndex, SpatialHashGrid
from murmuration.sim.utils.math2d import toroidal_delta


def _agents(positions):
    return [Agent(id=idx, position=Vector2(pos), velocity=Vector2(1.0, 0.0)) for idx, pos in enumerate(positions)]


def _ids(entries):
    return sorted(entry.agent_id for entry in entries)


def test_neighbor_query_matches_bruteforce():
    rng = random.Random(11)
    agents = _agents([(rng.uniform(-200, 200), rng.uniform(-200, 200)) for _ in range(200)])
    grid = SpatialHashGrid(cell_size=25.0)
    grid.rebuild(agents)

    assert len(grid) == len(agents)
    for agent in agents[:40]:
        found = set(_ids(grid.query_neighborhood(agent.position)))
        assert agent.id in found
        brute = {
            other.id
            for other in agents
            if (other.position - agent.position).length_squared() < 25.0 * 25.0
        }
        assert brute <= found


def test_entries_are_snapshots_taken_at_rebuild():
    agents = _agents([(0.0, 0.0)])
    grid = SpatialHashGrid(cell_size=10.0)
    grid.rebuild(agents)

    agents[0].position.x = 5.0
    agents[0].velocity.y = 9.0
    entry = grid.query_neighborhood(Vector2())[0]

    assert entry.position == Vector2(0.0, 0.0)
    assert entry.velocity == Vector2(1.0, 0.0)


def test_rebuild_drops_previous_tick_entries():
    agents = _agents([(0.0, 0.0), (5.0, 5.0)])
    grid = SpatialHashGrid(cell_size=10.0)
    grid.rebuild(agents)
    for agent in agents:
        agent.position.update(500.0, 500.0)
    grid.rebuild(agents)

    assert grid.query_neighborhood(Vector2()) == []
    assert _ids(grid.query_neighborhood(Vector2(500.0, 500.0))) == [0, 1]
    assert grid.occupied_cells == 1


def test_neighbor_sets_survive_translation_by_whole_cells():
    rng = random.Random(3)
    positions = [Vector2(rng.uniform(-100, 100), rng.uniform(-100, 100)) for _ in range(60)]
    shift = Vector2(30.0 * 7, -30.0 * 4)
    grid = SpatialHashGrid(cell_size=30.0)

    grid.rebuild(_agents(positions))
    before = [_ids(grid.query_neighborhood(pos)) for pos in positions]
    grid.rebuild(_agents([pos + shift for pos in positions]))
    after = [_ids(grid.query_neighborhood(pos + shift)) for pos in positions]

    assert before == after


def test_wrap_addressing_sees_across_the_seam():
    agents = _agents([(395.0, 0.0), (-395.0, 0.0)])
    flat = SpatialHashGrid(cell_size=50.0)
    flat.resize(800.0, 600.0)
    flat.rebuild(agents)
    wrapped = SpatialHashGrid(cell_size=50.0, wrap=True)
    wrapped.resize(800.0, 600.0)
    wrapped.rebuild(agents)

    assert (wrapped.grid_width, wrapped.grid_height) == (16, 12)
    assert wrapped.wrap_active
    assert _ids(flat.query_neighborhood(agents[0].position)) == [0]
    assert _ids(wrapped.query_neighborhood(agents[0].position)) == [0, 1]
    assert _ids(wrapped.query_neighborhood(agents[1].position)) == [0, 1]


def test_wrap_addressing_covers_a_narrow_last_column():
    # 820 / 50 leaves a 20-wide last column between column 15 and the seam.
    agents = _agents([(385.0, 0.0), (-405.0, 0.0)])
    grid = SpatialHashGrid(cell_size=50.0, wrap=True)
    grid.resize(820.0, 600.0)
    grid.rebuild(agents)

    assert grid.grid_width == 17
    assert toroidal_delta(agents[0].position, agents[1].position, 820.0, 600.0).length() == pytest.approx(30.0)
    assert _ids(grid.query_neighborhood(agents[0].position)) == [0, 1]
    assert _ids(grid.query_neighborhood(agents[1].position)) == [0, 1]


def test_unsized_wrap_grid_falls_back_to_absolute_cells():
    grid = SpatialHashGrid(cell_size=50.0, wrap=True)
    agents = _agents([(10.0, 10.0), (-395.0, 0.0)])
    grid.rebuild(agents)

    assert (grid.grid_width, grid.grid_height) == (0, 0)
    assert not grid.wrap_active
    assert _ids(grid.query_neighborhood(Vector2(10.0, 10.0))) == [0]

    grid.resize(0.0, 600.0)
    assert not grid.wrap_active


def test_tiny_wrapped_grid_visits_each_cell_once():
    grid = SpatialHashGrid(cell_size=50.0, wrap=True)
    grid.resize(60.0, 60.0)
    grid.rebuild(_agents([(0.0, 0.0), (20.0, -20.0)]))

    assert (grid.grid_width, grid.grid_height) == (2, 2)
    assert _ids(grid.query_neighborhood(Vector2())) == [0, 1]


def test_resize_discards_entries_keyed_for_the_old_extent():
    grid = SpatialHashGrid(cell_size=50.0, wrap=True)
    grid.resize(800.0, 600.0)
    grid.rebuild(_agents([(0.0, 0.0)]))
    grid.resize(400.0, 400.0)

    assert len(grid) == 0
    assert grid.query_neighborhood(Vector2()) == []


@pytest.mark.parametrize("cell_size", [0.0, -5.0, float("nan")])
def test_rejects_degenerate_cell_size(cell_size):
    with pytest.raises(ConfigError):
        SpatialHashGrid(cell_size=cell_size)


def test_all_pairs_index_returns_everyone():
    index = AllPairsIndex()
    index.rebuild(_agents([(0.0, 0.0), (1000.0, 1000.0), (-1000.0, 0.0)]))

    assert _ids(index.query_neighborhood(Vector2())) == [0, 1, 2]
    assert len(index) == 3
