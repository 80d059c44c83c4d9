from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from pygame.math import Vector2


@dataclass(slots=True)
class Agent:
    id: int
    position: Vector2
    velocity: Vector2
    acceleration: Vector2 = field(default_factory=Vector2)
    heading: float = 0.0


class AgentArena:
    """Live agents in spawn order, addressed by a stable integer id.

    Ids come from a counter that only moves forward, so a despawned agent's id
    is never handed to a later agent.
    """

    def __init__(self) -> None:
        self._agents: List[Agent] = []
        self._id_to_index: Dict[int, int] = {}
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._agents)

    def __iter__(self) -> Iterator[Agent]:
        return iter(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._id_to_index

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    def ids(self) -> List[int]:
        return [agent.id for agent in self._agents]

    def get(self, agent_id: int) -> Optional[Agent]:
        index = self._id_to_index.get(agent_id)
        if index is None:
            return None
        return self._agents[index]

    def spawn(self, position: Vector2, velocity: Vector2, heading: float = 0.0) -> Agent:
        agent = Agent(
            id=self._next_id,
            position=Vector2(position),
            velocity=Vector2(velocity),
            heading=heading,
        )
        self._next_id += 1
        self._id_to_index[agent.id] = len(self._agents)
        self._agents.append(agent)
        return agent

    def despawn(self, agent_id: int) -> bool:
        index = self._id_to_index.pop(agent_id, None)
        if index is None:
            return False
        del self._agents[index]
        self._refresh_index_map()
        return True

    def clear(self) -> None:
        """Drop every agent. The id counter keeps running."""
        self._agents.clear()
        self._id_to_index.clear()

    def _refresh_index_map(self) -> None:
        self._id_to_index = {agent.id: i for i, agent in enumerate(self._agents)}
