from __future__ import annotations

from pygame.math import Vector2

from murmuration.sim.core.agent import Agent, AgentArena


def test_agent_uses_slots_and_isolates_defaults():
    agent_a = Agent(id=1, position=Vector2(), velocity=Vector2())
    agent_b = Agent(id=2, position=Vector2(), velocity=Vector2())

    assert not hasattr(agent_a, "__dict__")
    assert hasattr(Agent, "__slots__")

    assert agent_a.acceleration is not agent_b.acceleration
    agent_a.acceleration.x = 1.5
    assert agent_b.acceleration.x == 0.0


def test_spawn_copies_vectors_and_assigns_sequential_ids():
    arena = AgentArena()
    position = Vector2(3.0, 4.0)
    velocity = Vector2(1.0, 0.0)

    first = arena.spawn(position, velocity)
    second = arena.spawn(position, velocity)

    assert (first.id, second.id) == (0, 1)
    assert arena.ids() == [0, 1]
    position.x = 100.0
    assert first.position == Vector2(3.0, 4.0)
    assert first.position is not second.position


def test_despawned_ids_are_never_reused():
    arena = AgentArena()
    for _ in range(3):
        arena.spawn(Vector2(), Vector2())

    assert arena.despawn(1)
    assert not arena.despawn(1)
    assert 1 not in arena
    assert arena.get(2).id == 2

    fresh = arena.spawn(Vector2(), Vector2())
    assert fresh.id == 3
    assert arena.ids() == [0, 2, 3]
    assert len(arena) == 3


def test_clear_keeps_id_counter_running():
    arena = AgentArena()
    arena.spawn(Vector2(), Vector2())
    arena.clear()

    assert len(arena) == 0
    assert arena.get(0) is None
    assert arena.spawn(Vector2(), Vector2()).id == 1
