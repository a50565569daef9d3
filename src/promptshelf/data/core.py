"""
ShelfContext - loads the shelf from disk, hands out a HierarchyStore and saves it back.

This module is the only place that knows where the shelf lives on disk. Callers
work against the store and never touch the YAML file themselves.
"""
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union
from promptshelf.store import HierarchyStore
from promptshelf.logs import get_logger
from .io import load_tree, save_tree

log = get_logger("data")

SHELF_FILENAME = "shelf.yml"

def default_data_dir() -> Path:
    """Resolve the data directory from PROMPTSHELF_DATA_DIR, falling back to the user data dir."""
    env_dir = os.getenv("PROMPTSHELF_DATA_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".local" / "share" / "promptshelf" / "data"

class ShelfContext:
    """Context manager giving access to the stored shelf. Saves on a clean exit."""

    def __init__(self, data_dir: Union[Path, str, None] = None, clock: Optional[Callable[[], datetime]] = None,
                 sweep_on_load: bool = True):
        self.data_dir = Path(data_dir) if data_dir is not None else default_data_dir()
        self.path = self.data_dir / SHELF_FILENAME
        self.clock = clock or datetime.now
        self.sweep_on_load = sweep_on_load
        self.store: Optional[HierarchyStore] = None

    def load(self) -> HierarchyStore:
        tree = load_tree(self.path)
        if tree is None:
            log.info(f"No shelf at {self.path}, starting from the seed shelf")
        self.store = HierarchyStore(tree, clock=self.clock)
        # Long-lived consumers run a TrashSweeper instead
        if self.sweep_on_load:
            self.store.sweep()
        return self.store

    def save(self):
        """Write the current snapshot back to disk."""
        if self.store is not None:
            save_tree(self.store.tree, self.path)

    def __enter__(self) -> HierarchyStore:
        """Context manager entry."""
        return self.load()

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - save unless the block failed."""
        if exc_type is None:
            self.save()
        else:
            log.info(f"Not saving shelf after error: {exc_val!r}")
