"""
reqtree storage

JSON session snapshots.
"""

from .snapshot import (
    Snapshot,
    dump_snapshot,
    load_snapshot,
    parse_snapshot,
    save_snapshot,
)

__all__ = ["Snapshot", "dump_snapshot", "load_snapshot", "parse_snapshot", "save_snapshot"]
