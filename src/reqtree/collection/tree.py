"""
Collection Tree Store

Owns the folder/request hierarchy. The tree is kept as an arena: a flat
mapping from node id to an immutable record holding its parent and child ids.
Every edit produces a new ``TreeState``; records of untouched nodes are shared
between the old and new state.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from ..core.exceptions import (
    CannotRemoveRootError,
    DuplicateNodeIdError,
    NotAFolderError,
    ParentNotFoundError,
)
from ..core.logging import get_logger, log_structured
from ..core.models import NodeLiteral, TabContent, TreeNode
from ..core.store import Store

logger = get_logger(__name__)

ROOT_ID = 0


class NodeRecord(BaseModel):
    """Arena entry for one tree node."""

    id: int
    label: str
    expanded: bool = False
    content: Optional[TabContent] = None
    children: Optional[Tuple[int, ...]] = None
    parent_id: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_folder(self) -> bool:
        return self.children is not None


class TreeState(BaseModel):
    """Immutable collection tree: node arena plus the id allocation counter."""

    nodes: Dict[int, NodeRecord] = Field(default_factory=dict)
    last_tree_id: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def initial(cls) -> "TreeState":
        root = NodeRecord(id=ROOT_ID, label="Root", expanded=True, children=())
        return cls(nodes={ROOT_ID: root}, last_tree_id=0)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def get_record(self, node_id: int) -> Optional[NodeRecord]:
        return self.nodes.get(node_id)

    def iter_preorder(self, start_id: int = ROOT_ID) -> Iterator[NodeRecord]:
        """Walk depth-first, pre-order, children in list order."""
        if start_id not in self.nodes:
            return
        stack = [start_id]
        while stack:
            record = self.nodes[stack.pop()]
            yield record
            if record.children:
                stack.extend(reversed(record.children))

    def subtree_ids(self, node_id: int) -> List[int]:
        return [record.id for record in self.iter_preorder(node_id)]

    def materialize(self, node_id: int) -> TreeNode:
        """Build the nested ``TreeNode`` view of one subtree."""
        record = self.nodes[node_id]
        children = None
        if record.children is not None:
            children = [self.materialize(child_id) for child_id in record.children]
        return TreeNode(
            id=record.id,
            label=record.label,
            expanded=record.expanded,
            children=children,
            content=record.content,
        )

    def find_node(self, node_id: int) -> Optional[TreeNode]:
        if node_id not in self.nodes:
            return None
        return self.materialize(node_id)

    def tree(self) -> TreeNode:
        return self.materialize(ROOT_ID)


# Actions


@dataclass(frozen=True)
class AddNode:
    parent_id: int
    node: NodeLiteral


@dataclass(frozen=True)
class EditNode:
    node: TreeNode


@dataclass(frozen=True)
class RemoveNode:
    node_id: int


@dataclass(frozen=True)
class SetExpanded:
    node_id: int
    expanded: bool


@dataclass(frozen=True)
class RenameNode:
    node_id: int
    label: str


@dataclass(frozen=True)
class SetTree:
    tree: TreeNode


TreeAction = Union[AddNode, EditNode, RemoveNode, SetExpanded, RenameNode, SetTree]


def reduce_tree(state: TreeState, action: TreeAction) -> TreeState:
    """Apply one action to the tree and return the new state."""
    if isinstance(action, AddNode):
        return _add_node(state, action.parent_id, action.node)
    if isinstance(action, EditNode):
        return _edit_node(state, action.node)
    if isinstance(action, RemoveNode):
        return _remove_node(state, action.node_id)
    if isinstance(action, SetExpanded):
        return _update_record(state, action.node_id, expanded=action.expanded)
    if isinstance(action, RenameNode):
        return _update_record(state, action.node_id, label=action.label)
    if isinstance(action, SetTree):
        return _set_tree(action.tree)
    raise TypeError(f"Unknown tree action: {action!r}")


def _add_node(state: TreeState, parent_id: int, literal: NodeLiteral) -> TreeState:
    parent = state.nodes.get(parent_id)
    if parent is None:
        raise ParentNotFoundError(
            f"Parent node {parent_id} not found", {"parent_id": parent_id}
        )
    if parent.children is None:
        raise NotAFolderError(
            f"Node {parent_id} is not a folder", {"parent_id": parent_id}
        )

    nodes = dict(state.nodes)
    next_id = state.last_tree_id + 1
    last_id = state.last_tree_id

    def allocate() -> int:
        nonlocal next_id, last_id
        while next_id in nodes:
            next_id += 1
        last_id = next_id
        next_id += 1
        return last_id

    def insert(node: NodeLiteral, owner_id: int) -> int:
        node_id = allocate()
        child_ids = None
        if node.children is not None:
            child_ids = tuple(insert(child, node_id) for child in node.children)
        nodes[node_id] = NodeRecord(
            id=node_id,
            label=node.label,
            expanded=node.expanded,
            content=node.content,
            children=child_ids,
            parent_id=owner_id,
        )
        return node_id

    new_id = insert(literal, parent_id)
    nodes[parent_id] = parent.model_copy(
        update={"children": parent.children + (new_id,), "expanded": True}
    )

    log_structured(
        logger,
        logging.DEBUG,
        "Added tree node",
        parent_id=parent_id,
        node_id=new_id,
        last_tree_id=last_id,
    )
    return state.model_copy(update={"nodes": nodes, "last_tree_id": last_id})


def _collect_ids(node: TreeNode) -> List[int]:
    ids = [node.id]
    for child in node.children or ():
        ids.extend(_collect_ids(child))
    return ids


def _edit_node(state: TreeState, updated: TreeNode) -> TreeState:
    old = state.nodes.get(updated.id)
    if old is None:
        logger.debug(f"Edit ignored, node {updated.id} not in tree")
        return state
    if updated.id == ROOT_ID and not updated.is_folder:
        raise NotAFolderError("Root node must stay a folder", {"node_id": ROOT_ID})

    replaced: Set[int] = set(state.subtree_ids(updated.id))
    new_ids = _collect_ids(updated)
    seen: Set[int] = set()
    for node_id in new_ids:
        if node_id in seen or (node_id in state.nodes and node_id not in replaced):
            raise DuplicateNodeIdError(
                f"Node id {node_id} is already used in the tree", {"node_id": node_id}
            )
        seen.add(node_id)

    nodes = {node_id: record for node_id, record in state.nodes.items() if node_id not in replaced}

    def insert(node: TreeNode, owner_id: Optional[int]) -> None:
        child_ids = None
        if node.children is not None:
            child_ids = tuple(child.id for child in node.children)
            for child in node.children:
                insert(child, node.id)
        record = NodeRecord(
            id=node.id,
            label=node.label,
            expanded=node.expanded,
            content=node.content,
            children=child_ids,
            parent_id=owner_id,
        )
        previous = state.nodes.get(node.id)
        nodes[node.id] = previous if previous == record else record

    insert(updated, old.parent_id)
    unchanged = len(new_ids) == len(replaced) and all(
        nodes[node_id] is state.nodes.get(node_id) for node_id in new_ids
    )
    if unchanged:
        return state

    return state.model_copy(
        update={"nodes": nodes, "last_tree_id": max(state.last_tree_id, max(new_ids))}
    )


def _remove_node(state: TreeState, node_id: int) -> TreeState:
    if node_id == ROOT_ID:
        raise CannotRemoveRootError("Cannot remove root node", {"node_id": node_id})

    record = state.nodes.get(node_id)
    if record is None:
        return state

    removed = set(state.subtree_ids(node_id))
    nodes = {key: value for key, value in state.nodes.items() if key not in removed}
    parent = nodes[record.parent_id]
    nodes[parent.id] = parent.model_copy(
        update={"children": tuple(child for child in parent.children if child != node_id)}
    )
    logger.debug(f"Removed tree node {node_id} ({len(removed)} nodes)")
    return state.model_copy(update={"nodes": nodes})


def _update_record(state: TreeState, node_id: int, **changes: Any) -> TreeState:
    record = state.nodes.get(node_id)
    if record is None:
        return state
    if all(getattr(record, key) == value for key, value in changes.items()):
        return state
    nodes = dict(state.nodes)
    nodes[node_id] = record.model_copy(update=changes)
    return state.model_copy(update={"nodes": nodes})


def _set_tree(root: TreeNode) -> TreeState:
    if root.id != ROOT_ID:
        raise ValueError(f"Tree root must have id {ROOT_ID}, got {root.id}")
    if not root.is_folder:
        raise NotAFolderError("Root node must be a folder", {"node_id": ROOT_ID})

    nodes: Dict[int, NodeRecord] = {}

    def insert(node: TreeNode, owner_id: Optional[int]) -> None:
        if node.id in nodes:
            raise DuplicateNodeIdError(
                f"Node id {node.id} appears twice", {"node_id": node.id}
            )
        child_ids = None
        if node.children is not None:
            child_ids = tuple(child.id for child in node.children)
        nodes[node.id] = NodeRecord(
            id=node.id,
            label=node.label,
            expanded=node.expanded,
            content=node.content,
            children=child_ids,
            parent_id=owner_id,
        )
        for child in node.children or ():
            insert(child, node.id)

    insert(root, None)
    return TreeState(nodes=nodes, last_tree_id=max(nodes))


NodeInput = Union[NodeLiteral, Mapping[str, Any]]


class TreeStore(Store[TreeState, TreeAction]):
    """
    Collection tree container.

    Structural errors (missing parent, leaf parent, root removal) propagate as
    ``TreeError`` subclasses and leave the tree unchanged.
    """

    def __init__(self, initial_state: Optional[TreeState] = None):
        super().__init__(reduce_tree, initial_state or TreeState.initial())

    def add_node(self, parent_id: int, node: NodeInput) -> TreeState:
        """
        Insert a literal subtree under a folder, allocating fresh ids.

        The receiving folder is expanded so the new node is visible.

        Args:
            parent_id: Id of the folder receiving the subtree
            node: Node literal (model or plain mapping) without ids

        Returns:
            The new tree state

        Raises:
            ParentNotFoundError: If no node has ``parent_id``
            NotAFolderError: If the parent is a saved request
        """
        literal = node if isinstance(node, NodeLiteral) else NodeLiteral.model_validate(node)
        return self.dispatch(AddNode(parent_id, literal))

    def import_nodes(self, parent_id: int, nodes: Sequence[NodeInput]) -> TreeState:
        """Bulk insert literals in order, as produced by an importer."""
        for node in nodes:
            self.add_node(parent_id, node)
        logger.info(f"Imported {len(nodes)} node(s) under {parent_id}")
        return self.state

    def edit_node(self, node: TreeNode) -> TreeState:
        """Replace the node with the same id, together with its subtree."""
        return self.dispatch(EditNode(node))

    def remove_node(self, node_id: int) -> TreeState:
        """
        Remove a node and its descendants.

        Raises:
            CannotRemoveRootError: If ``node_id`` is the root
        """
        return self.dispatch(RemoveNode(node_id))

    def set_expanded(self, node_id: int, expanded: bool) -> TreeState:
        return self.dispatch(SetExpanded(node_id, expanded))

    def toggle_expanded(self, node_id: int) -> TreeState:
        record = self.state.get_record(node_id)
        if record is None:
            return self.state
        return self.set_expanded(node_id, not record.expanded)

    def rename_node(self, node_id: int, label: str) -> TreeState:
        return self.dispatch(RenameNode(node_id, label))

    def set_tree(self, tree: TreeNode) -> TreeState:
        return self.dispatch(SetTree(tree))

    def find_node(self, node_id: int) -> Optional[TreeNode]:
        return self.state.find_node(node_id)

    def tree(self) -> TreeNode:
        return self.state.tree()
