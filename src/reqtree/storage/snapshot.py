"""
Session Snapshot Storage

Saves and restores the collection tree and the open tabs as one JSON file.
Node and tab ids are preserved, so a round-trip reproduces the same session.
"""

from pathlib import Path
from typing import Tuple

from pydantic import BaseModel, Field, ValidationError

from ..collection.tree import SetTree, TreeState, reduce_tree
from ..core.exceptions import ReqtreeException, StorageError
from ..core.logging import get_logger
from ..core.models import TabState, TreeNode

logger = get_logger(__name__)

SNAPSHOT_VERSION = "1.0"


class Snapshot(BaseModel):
    """On-disk session layout."""

    version: str = Field(default=SNAPSHOT_VERSION, description="Snapshot format version")
    last_tree_id: int = Field(default=0, ge=0, description="Tree id allocation counter")
    tree: TreeNode
    tabs: TabState = Field(default_factory=TabState.initial)


def to_snapshot(tree_state: TreeState, tab_state: TabState) -> Snapshot:
    return Snapshot(
        last_tree_id=tree_state.last_tree_id, tree=tree_state.tree(), tabs=tab_state
    )


def from_snapshot(snapshot: Snapshot) -> Tuple[TreeState, TabState]:
    """
    Rebuild store states from a snapshot.

    Raises:
        StorageError: If the version is unknown or the tree is malformed
    """
    if snapshot.version != SNAPSHOT_VERSION:
        raise StorageError(
            f"Unsupported snapshot version {snapshot.version!r}",
            {"expected": SNAPSHOT_VERSION},
        )

    try:
        tree_state = reduce_tree(TreeState.initial(), SetTree(snapshot.tree))
    except (ReqtreeException, ValueError) as e:
        raise StorageError(f"Invalid tree in snapshot: {e}")

    last_tree_id = max(tree_state.last_tree_id, snapshot.last_tree_id)
    return tree_state.model_copy(update={"last_tree_id": last_tree_id}), snapshot.tabs


def dump_snapshot(tree_state: TreeState, tab_state: TabState, indent: int = 2) -> str:
    """Serialize the session to JSON text."""
    return to_snapshot(tree_state, tab_state).model_dump_json(indent=indent)


def parse_snapshot(text: str) -> Tuple[TreeState, TabState]:
    """
    Parse JSON text written by ``dump_snapshot``.

    Raises:
        StorageError: If the text is not a valid snapshot
    """
    try:
        snapshot = Snapshot.model_validate_json(text)
    except ValidationError as e:
        raise StorageError(
            f"Invalid snapshot: {e.error_count()} validation error(s)",
            {"errors": [error["msg"] for error in e.errors()]},
        )
    return from_snapshot(snapshot)


def save_snapshot(
    path: Path, tree_state: TreeState, tab_state: TabState, indent: int = 2
) -> None:
    """
    Write the session to ``path``.

    Raises:
        StorageError: If the file cannot be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(dump_snapshot(tree_state, tab_state, indent=indent))
    except OSError as e:
        raise StorageError(f"Failed to write snapshot to {path}: {e}")

    logger.info(
        f"Saved snapshot to {path} "
        f"({len(tree_state.nodes)} nodes, {len(tab_state.tabs)} tabs)"
    )


def load_snapshot(path: Path) -> Tuple[TreeState, TabState]:
    """
    Read a session written by ``save_snapshot``.

    Raises:
        StorageError: If the file is missing, unreadable or invalid
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError:
        raise StorageError(f"File not found: {path}")
    except OSError as e:
        raise StorageError(f"Failed to read snapshot from {path}: {e}")

    tree_state, tab_state = parse_snapshot(text)
    logger.debug(f"Loaded snapshot from {path}")
    return tree_state, tab_state

