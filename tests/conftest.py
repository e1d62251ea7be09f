"""
Pytest configuration and shared fixtures for reqtree tests.
"""

import logging
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Mapping, Optional, Tuple

import pytest

from reqtree.collection.tree import TreeStore
from reqtree.core.config import HTTPConfig, ReqtreeConfig
from reqtree.core.exceptions import TransportError
from reqtree.core.logging import PACKAGE_LOGGERS
from reqtree.core.models import Header, Method, NodeLiteral, Param, TabContent
from reqtree.executor.transport import TransportResponse
from reqtree.tabs.session import TabSessionStore


class FakeTransport:
    """Records calls and answers with a canned response or error."""

    def __init__(
        self,
        response: Optional[TransportResponse] = None,
        error: Optional[Exception] = None,
    ):
        self.response = response or TransportResponse(
            url="http://example.com/",
            status=200,
            ok=True,
            headers={"content-type": "application/json"},
            raw_headers={"content-type": ["application/json"]},
            data='{"ok":true}',
        )
        self.error = error
        self.calls: List[Tuple[str, str, Dict[str, str], Optional[bytes], Optional[int]]] = []

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: Optional[int],
    ) -> TransportResponse:
        self.calls.append((method, url, dict(headers), body, timeout))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo logger changes made by setup_logging so caplog keeps working."""
    yield
    for name in ("", *PACKAGE_LOGGERS):
        logger = logging.getLogger(name or None)
        for handler in list(logger.handlers):
            if (handler.get_name() or "").startswith("reqtree."):
                logger.removeHandler(handler)
                handler.close()
    for name in PACKAGE_LOGGERS:
        logger = logging.getLogger(name)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def test_config(temp_dir: Path) -> ReqtreeConfig:
    """Provide a test configuration."""
    return ReqtreeConfig(
        debug=True,
        storage={"snapshot_path": str(temp_dir / "state" / "session.json")},
        logging={"level": "DEBUG"},
    )


@pytest.fixture
def http_config() -> HTTPConfig:
    return HTTPConfig(request_timeout=30)


@pytest.fixture
def tree_store() -> TreeStore:
    return TreeStore()


@pytest.fixture
def tab_store() -> TabSessionStore:
    return TabSessionStore()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def failing_transport() -> FakeTransport:
    return FakeTransport(error=TransportError("Failed to send request: connection refused"))


@pytest.fixture
def sample_request() -> TabContent:
    """A saved GET request with one query parameter."""
    return TabContent(
        method=Method.GET,
        url="http://example.com/users?page=1",
        headers=[Header(key="Accept", value="application/json")],
        params=[Param(key="page", value="1"), Param()],
    )


@pytest.fixture
def sample_collection(sample_request: TabContent) -> NodeLiteral:
    """A folder holding one request and one nested folder with a request."""
    return NodeLiteral(
        label="API",
        expanded=True,
        children=[
            NodeLiteral(label="List users", content=sample_request),
            NodeLiteral(
                label="Admin",
                children=[
                    NodeLiteral(
                        label="Create user",
                        content=TabContent(
                            method=Method.POST,
                            url="http://example.com/admin/users",
                            body='{"name": "alice"}',
                        ),
                    )
                ],
            ),
        ],
    )
