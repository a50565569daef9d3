"""
Data management submodule: reading and writing the shelf file.
"""

from .core import ShelfContext, default_data_dir, SHELF_FILENAME
from .io import atomic_write, load_tree, save_tree

__all__ = [
    'ShelfContext',
    'default_data_dir',
    'SHELF_FILENAME',
    'atomic_write',
    'load_tree',
    'save_tree',
]
