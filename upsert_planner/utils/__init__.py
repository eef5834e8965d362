"""
Utilities package for the upsert planner.

Exports shared helpers for logging, profiling, and other cross-cutting concerns.
Keep this package lightweight and free of planning logic.
"""

from upsert_planner.utils.logging import configure_logging, get_logger
from upsert_planner.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
