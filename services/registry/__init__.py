"""
Vision Buddy Spatial Registry

Known building locations: the Snowflake-backed registry and an in-memory
registry for offline use.
"""

from .memory_registry import InMemoryRegistry
from .snowflake_client import (
    SnowflakeRegistryClient,
    StatementResult,
    new_node_id,
    parse_node,
    sanitize_account,
)

__all__ = [
    "SnowflakeRegistryClient",
    "InMemoryRegistry",
    "StatementResult",
    "new_node_id",
    "parse_node",
    "sanitize_account",
]
