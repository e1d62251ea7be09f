"""
reqtree CLI Main Entry Point

Command-line shell over a saved session: import API documents into the
collection, open saved requests as tabs and send them.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from .. import __version__
from ..collection.openapi import build_literals, load_document
from ..collection.tree import ROOT_ID, TreeState, TreeStore
from ..core.config import get_config, get_snapshot_path
from ..core.exceptions import DocumentError, StorageError, TreeError
from ..core.logging import get_logger, setup_logging
from ..core.models import TabState
from ..executor.engine import RequestExecutor
from ..storage.snapshot import load_snapshot, save_snapshot
from ..tabs.session import TabSessionStore

logger = get_logger(__name__)


def _load_session(path: Path) -> Tuple[TreeStore, TabSessionStore]:
    if not path.exists():
        logger.debug(f"No snapshot at {path}, starting a new session")
        return TreeStore(), TabSessionStore()
    tree_state, tab_state = load_snapshot(path)
    return TreeStore(tree_state), TabSessionStore(tab_state)


def _save_session(path: Path, tree_store: TreeStore, tab_store: TabSessionStore) -> None:
    save_snapshot(path, tree_store.state, tab_store.state, indent=get_config().storage.indent)


def _fail(message: str) -> None:
    click.echo(f"✗ {message}", err=True)
    sys.exit(1)


def _print_tree(state: TreeState, node_id: int, depth: int = 0) -> None:
    record = state.nodes[node_id]
    indent = "  " * depth
    if record.is_folder:
        marker = "-" if record.expanded else "+"
        click.echo(f"{indent}{marker} [{record.id}] {record.label}/")
        for child_id in record.children:
            _print_tree(state, child_id, depth + 1)
    else:
        content = record.content
        click.echo(
            f"{indent}  [{record.id}] {record.label}  ({content.method.value} {content.url})"
        )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--snapshot",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Session snapshot file (default from configuration)",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, snapshot: Optional[Path], debug: bool):
    """
    reqtree - HTTP request collection and tab state engine

    Every command loads the session snapshot, applies its change and writes
    the snapshot back.
    """
    config = get_config()
    setup_logging(
        log_level="DEBUG" if debug or config.debug else config.logging.level,
        log_file=Path(config.logging.file_path) if config.logging.file_path else None,
    )

    ctx.ensure_object(dict)
    ctx.obj["snapshot"] = snapshot or get_snapshot_path()


@cli.command("import")
@click.argument("document", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--parent", "-p", default=ROOT_ID, show_default=True, help="Folder to import into")
@click.pass_context
def import_document(ctx: click.Context, document: Path, parent: int):
    """
    Import an OpenAPI document (YAML or JSON) into the collection.

    Example:
        reqtree import petstore.yaml
    """
    path = ctx.obj["snapshot"]
    try:
        tree_store, tab_store = _load_session(path)
        literals = build_literals(load_document(document))
        tree_store.import_nodes(parent, literals)
        _save_session(path, tree_store, tab_store)
    except (DocumentError, StorageError, TreeError) as e:
        _fail(str(e))

    requests = sum(1 for record in tree_store.state.nodes.values() if not record.is_folder)
    click.echo(f"✓ Imported {document.name}")
    click.echo(f"  Saved requests in collection: {requests}")


@cli.command("tree")
@click.pass_context
def show_tree(ctx: click.Context):
    """
    Show the collection tree with node ids.

    Example:
        reqtree tree
    """
    try:
        tree_store, _ = _load_session(ctx.obj["snapshot"])
    except StorageError as e:
        _fail(str(e))
    _print_tree(tree_store.state, ROOT_ID)


@cli.command("open")
@click.argument("node_id", type=int)
@click.pass_context
def open_node(ctx: click.Context, node_id: int):
    """
    Open a saved request as a new tab.

    Example:
        reqtree open 3
    """
    path = ctx.obj["snapshot"]
    try:
        tree_store, tab_store = _load_session(path)
        node = tree_store.find_node(node_id)
        if node is None:
            _fail(f"Node not found: {node_id}")
        state = tab_store.open_node(node)
        _save_session(path, tree_store, tab_store)
    except (StorageError, TreeError) as e:
        _fail(str(e))

    click.echo(f"✓ Opened '{node.label}' as tab {state.active_tab_id}")


@cli.command("tabs")
@click.pass_context
def list_tabs(ctx: click.Context):
    """
    List open tabs; the active one is marked with '*'.

    Example:
        reqtree tabs
    """
    try:
        _, tab_store = _load_session(ctx.obj["snapshot"])
    except StorageError as e:
        _fail(str(e))

    state: TabState = tab_store.state
    if not state.tabs:
        click.echo("No open tabs.")
        return

    for tab in state.tabs:
        marker = "*" if tab.id == state.active_tab_id else " "
        content = tab.content
        click.echo(f"{marker} [{tab.id}] {tab.label}  ({content.method.value} {content.url})")


@cli.command("close")
@click.argument("tab_id", type=int)
@click.pass_context
def close_tab(ctx: click.Context, tab_id: int):
    """
    Close a tab.

    Example:
        reqtree close 2
    """
    path = ctx.obj["snapshot"]
    try:
        tree_store, tab_store = _load_session(path)
        if tab_store.get_tab(tab_id) is None:
            _fail(f"Tab not found: {tab_id}")
        state = tab_store.close_tab(tab_id)
        _save_session(path, tree_store, tab_store)
    except StorageError as e:
        _fail(str(e))

    click.echo(f"✓ Closed tab {tab_id} (active tab: {state.active_tab_id})")


@cli.command("send")
@click.argument("tab_id", type=int)
@click.option("--pretty/--raw", default=True, help="Pretty-print JSON responses")
@click.pass_context
def send_tab(ctx: click.Context, tab_id: int, pretty: bool):
    """
    Send a tab's request and record the response in the session.

    Example:
        reqtree send 1
    """
    path = ctx.obj["snapshot"]
    try:
        tree_store, tab_store = _load_session(path)
    except StorageError as e:
        _fail(str(e))

    executor = RequestExecutor(transport=ctx.obj.get("transport"), tab_store=tab_store)
    result = asyncio.run(executor.submit(tab_id))
    if result.ok and pretty:
        tab_store.format_response(tab_id)

    try:
        _save_session(path, tree_store, tab_store)
    except StorageError as e:
        _fail(str(e))

    if not result.ok:
        _fail(f"{result.error.value}: {result.message}")

    response = tab_store.get_tab(tab_id).content.response
    click.echo(f"{response.status} {response.url} ({response.duration_ms}ms)")
    for key, value in response.headers.items():
        click.echo(f"{key}: {value}")
    click.echo()
    click.echo(response.data)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
