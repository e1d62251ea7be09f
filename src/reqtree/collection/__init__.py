"""
reqtree Collection Tree

Folder/request hierarchy and the importers that populate it.
"""

from .tree import TreeState, TreeStore, NodeRecord, reduce_tree
from .openapi import build_collection, build_literals, load_document, parse_document

__all__ = [
    "TreeState",
    "TreeStore",
    "NodeRecord",
    "reduce_tree",
    "build_collection",
    "build_literals",
    "load_document",
    "parse_document",
]
