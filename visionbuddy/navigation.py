"""
Vision Buddy Navigation State Manager

Holds the single active navigation goal and resolves spoken targets
against the spatial registry. A registry hit replaces the target with the
node's description ("navigating"); a miss keeps the raw request and asks
the vision service to find it from signs ("sign hunting").

The goal is only cleared by an explicit cancel. A long walk to an
elevator must not silently lose its target, so there is no timeout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from visionbuddy.exceptions import RegistryError
from visionbuddy.types import NavigationState, SpatialNode, SpatialRegistry

logger = logging.getLogger("visionbuddy.navigation")


__all__ = ["NavigationStateManager", "TargetResolution"]


@dataclass(frozen=True)
class TargetResolution:
    """Outcome of resolve_target.

    Attributes:
        matched: First registry node with a usable description, or None
            (sign hunting)
        state: Navigation state after resolution, None if nothing was set
    """
    matched: Optional[SpatialNode]
    state: Optional[NavigationState]

    @property
    def announcement_key(self) -> str:
        """Catalog key for the sentence announcing this resolution."""
        return "navigating" if self.matched is not None else "sign_hunting"


class NavigationStateManager:
    """Owner of the current NavigationState."""

    def __init__(self, registry: Optional[SpatialRegistry] = None):
        self.registry = registry
        self._state: Optional[NavigationState] = None

    @property
    def state(self) -> Optional[NavigationState]:
        """Current goal, or None."""
        return self._state

    @property
    def target(self) -> Optional[str]:
        """Current target description, or None."""
        return self._state.target_description if self._state else None

    @property
    def has_target(self) -> bool:
        return self._state is not None

    async def resolve_target(self, candidate: str, building_id: str) -> TargetResolution:
        """
        Resolve a spoken target and make it the active goal.

        Registry failures are treated as "no match" so navigation can still
        fall back to sign hunting.

        Args:
            candidate: Target text, usually the whole utterance
            building_id: Building to search in

        Returns:
            TargetResolution with the matched node (or None)
        """
        candidate = candidate.strip()
        if not candidate:
            logger.warning("Ignoring empty navigation target")
            return TargetResolution(matched=None, state=self._state)

        matches = []
        if self.registry is not None:
            try:
                matches = await self.registry.search(candidate, building_id)
            except RegistryError as e:
                logger.warning(f"Registry search failed, sign hunting instead: {e}")
                matches = []

        node = next((n for n in matches if n.description.strip()), None)
        if node is not None:
            self._state = NavigationState(
                target_description=node.description,
                source_registry_match=True,
            )
            logger.info(f"Navigation target matched registry node {node.id}")
            return TargetResolution(matched=node, state=self._state)

        self._state = NavigationState(
            target_description=candidate,
            source_registry_match=False,
        )
        logger.info(f"No registry match for {candidate!r}, sign hunting")
        return TargetResolution(matched=None, state=self._state)

    def select_node(self, node: SpatialNode) -> TargetResolution:
        """Make a known registry node the active goal without searching."""
        self._state = NavigationState(
            target_description=node.description,
            source_registry_match=True,
        )
        logger.info(f"Navigation target set to saved place {node.id}")
        return TargetResolution(matched=node, state=self._state)

    def cancel(self) -> None:
        """Clear the goal unconditionally."""
        if self._state is not None:
            logger.info(f"Navigation to {self._state.target_description!r} cancelled")
        self._state = None
