"""
Vision Buddy In-Memory Registry

Registry kept in a list, for offline sessions and tests. Matching follows
the Snowflake client: case-insensitive substring of the description
within one building.
"""

import logging
from typing import Iterable, List, Optional

from services.registry.snowflake_client import new_node_id
from visionbuddy.types import NewSpatialNode, SpatialNode

logger = logging.getLogger("visionbuddy.registry")


class InMemoryRegistry:
    """SpatialRegistry backed by a list of nodes."""

    def __init__(self, nodes: Optional[Iterable[SpatialNode]] = None):
        self._nodes: List[SpatialNode] = list(nodes or [])

    @property
    def nodes(self) -> List[SpatialNode]:
        return list(self._nodes)

    async def search(self, query: str, building_id: str) -> List[SpatialNode]:
        needle = query.lower()
        return [
            n for n in self._nodes
            if n.building_id == building_id and needle in n.description.lower()
        ]

    async def fetch_verified(self, building_id: str) -> List[SpatialNode]:
        return [n for n in self._nodes if n.building_id == building_id and n.is_golden_path]

    async def save(self, node: NewSpatialNode) -> str:
        node_id = new_node_id()
        self._nodes.append(SpatialNode(
            id=node_id,
            building_id=node.building_id,
            coordinates=node.coordinates,
            description=node.description,
            is_golden_path=node.is_golden_path,
        ))
        logger.debug(f"Saved in-memory node {node_id}")
        return node_id
