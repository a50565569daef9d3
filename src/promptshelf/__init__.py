"""
PromptShelf - a personal organizer for reusable text prompts.

Prompts are grouped in a three level tree:
Project → Task → Prompt
with a trash that keeps deleted items for 24 hours.
"""

from .version import VERSION, APP_SCHEMA_VERSION
from .models import (
    ItemKind,
    PromptTree,
    Project,
    Task,
    Prompt,
    TrashItem,
    seed_tree,
)
from .store import HierarchyStore, RETENTION
from .sweeper import TrashSweeper, SWEEP_INTERVAL
from .data import ShelfContext

__version__ = VERSION

__all__ = [
    "VERSION",
    "APP_SCHEMA_VERSION",
    "ItemKind",
    "PromptTree",
    "Project",
    "Task",
    "Prompt",
    "TrashItem",
    "seed_tree",
    "HierarchyStore",
    "RETENTION",
    "TrashSweeper",
    "SWEEP_INTERVAL",
    "ShelfContext",
]
