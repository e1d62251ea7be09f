"""
Demo script showing how to use the reqtree request composer engine.

This demonstrates:
- Importing an OpenAPI document into the collection tree
- Opening saved requests as tabs
- Keeping the URL and the parameter table in sync
- Sending a request against a local server and recording the response
- Saving the session to a snapshot file
"""

import asyncio
import sys
import tempfile
from pathlib import Path

from aiohttp import web
from aiohttp.test_utils import TestServer

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reqtree.collection import TreeStore, build_literals, parse_document
from reqtree.collection.tree import ROOT_ID
from reqtree.core.config import HTTPConfig
from reqtree.core.models import Param
from reqtree.executor import ExecutionState, RequestExecutor
from reqtree.storage import load_snapshot, save_snapshot
from reqtree.tabs import TabSessionStore

API_DOCUMENT = """
openapi: 3.0.0
info:
  title: Books
servers:
  - url: {server}
paths:
  /books:
    get:
      parameters:
        - name: author
          in: query
          required: true
          example: tolkien
    post:
      requestBody:
        content:
          application/json:
            example:
              title: The Hobbit
"""


async def list_books(request: web.Request) -> web.Response:
    author = request.query.get("author", "")
    return web.json_response([{"title": "The Hobbit", "author": author}])


def demo_collection(server_url: str) -> TreeStore:
    """Demonstrate importing an API description into the tree."""
    print("=" * 60)
    print("Demo 1: Collection Import")
    print("=" * 60)

    tree_store = TreeStore()
    document = parse_document(API_DOCUMENT.format(server=server_url))
    tree_store.import_nodes(ROOT_ID, build_literals(document))

    for record in tree_store.state.iter_preorder():
        kind = "folder" if record.is_folder else record.content.method.value
        print(f"  [{record.id}] {record.label} ({kind})")

    return tree_store


def demo_tabs(tree_store: TreeStore) -> TabSessionStore:
    """Demonstrate opening tabs and editing URL and parameters."""
    print("\n" + "=" * 60)
    print("Demo 2: Tabs and Parameter Sync")
    print("=" * 60)

    tab_store = TabSessionStore()
    tab_store.open_node(tree_store.find_node(3))
    tab = tab_store.active_tab()
    print(f"\nOpened tab {tab.id}: {tab.content.url}")

    result = tab_store.set_params(
        tab.id, [Param(key="author", value="le guin"), Param(enable=False, key="page", value="2")]
    )
    print(f"After parameter edit: {tab_store.get_tab(tab.id).content.url} (ok={result.ok})")

    result = tab_store.set_url(tab.id, "not a url")
    print(f"Invalid URL edit: ok={result.ok}, error={result.error.value}")

    tab_store.set_url(tab.id, tab.content.url)
    print(f"Restored URL: {tab_store.get_tab(tab.id).content.url}")

    return tab_store


async def demo_send(tab_store: TabSessionStore) -> None:
    """Demonstrate sending the active tab."""
    print("\n" + "=" * 60)
    print("Demo 3: Sending Requests")
    print("=" * 60)

    executor = RequestExecutor(tab_store=tab_store, config=HTTPConfig(request_timeout=5))
    executor.subscribe(lambda tab_id, state: print(f"  tab {tab_id}: {state.value}"))

    tab_id = tab_store.state.active_tab_id
    result = await executor.submit(tab_id)
    if result.ok:
        tab_store.format_response(tab_id)
    response = tab_store.get_tab(tab_id).content.response
    print(f"\nStatus: {response.status} in {response.duration_ms}ms")
    print(response.data)
    assert executor.status(tab_id) is ExecutionState.IDLE


def demo_snapshot(tree_store: TreeStore, tab_store: TabSessionStore) -> None:
    """Demonstrate saving and restoring the session."""
    print("\n" + "=" * 60)
    print("Demo 4: Session Snapshot")
    print("=" * 60)

    with tempfile.TemporaryDirectory() as temp_dir:
        path = Path(temp_dir) / "session.json"
        save_snapshot(path, tree_store.state, tab_store.state)
        tree_state, tab_state = load_snapshot(path)

    print(f"\nRestored {len(tree_state.nodes)} nodes and {len(tab_state.tabs)} tabs")
    print(f"Identical tree: {tree_state == tree_store.state}")


async def run_demos() -> None:
    app = web.Application()
    app.router.add_get("/books", list_books)

    async with TestServer(app) as server:
        server_url = str(server.make_url("/")).rstrip("/")
        tree_store = demo_collection(server_url)
        tab_store = demo_tabs(tree_store)
        await demo_send(tab_store)
        demo_snapshot(tree_store, tab_store)


def main():
    """Run all demos."""
    print("\n" + "=" * 60)
    print("reqtree Composer Engine Demo")
    print("=" * 60 + "\n")

    asyncio.run(run_demos())

    print("\n" + "=" * 60)
    print("Demo Complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
