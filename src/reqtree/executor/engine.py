"""
Request Executor

Turns a tab's declarative content into one outbound call and writes the
recorded response back into the same tab.

Each submit moves through ``IDLE -> PENDING -> SUCCESS | FAILED -> IDLE``.
There is no re-entrancy guard: concurrent submits on one tab race and the
last one to resolve wins.
"""

import asyncio
import json
import time
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Set

from pydantic import BaseModel, ConfigDict, Field

from ..core.config import HTTPConfig, get_config
from ..core.exceptions import ErrorKind, InvalidBodyJSONError, TransportError
from ..core.logging import get_logger
from ..core.models import Header, Method, ResponseRecord, TabContent
from ..core.results import Result
from ..tabs.params import apply_path_params
from ..tabs.session import TabSessionStore
from .transport import AiohttpTransport, Transport

logger = get_logger(__name__)

JSON_CONTENT_TYPE = "application/json"
DEFAULT_ACCEPT = "*/*"


class ExecutionState(str, Enum):
    """Per-tab submit lifecycle."""

    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


StateListener = Callable[[int, ExecutionState], None]


class PreparedRequest(BaseModel):
    """Transport-ready form of a tab's content."""

    method: Method
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[bytes] = None
    timeout: Optional[int] = None

    model_config = ConfigDict(frozen=True)


def collapse_headers(headers: Sequence[Header]) -> Dict[str, str]:
    """
    Enabled rows with a key, trimmed and in order; a later duplicate overwrites
    an earlier one. ``Accept: */*`` is added when no row sets it.
    """
    collapsed: Dict[str, str] = {}
    for header in headers:
        key = header.key.strip()
        if header.enable and key:
            collapsed[key] = header.value
    if not _has_header(collapsed, "accept"):
        collapsed["Accept"] = DEFAULT_ACCEPT
    return collapsed


def _has_header(headers: Dict[str, str], name: str) -> bool:
    return any(key.lower() == name for key in headers)


def build_request(content: TabContent, timeout: int = 30) -> PreparedRequest:
    """
    Prepare the outbound call for a tab.

    Path placeholders are filled from the path table. POST, PUT and PATCH send
    the body as compact JSON. The other verbs send no body and carry
    ``timeout``.

    Args:
        content: Tab content to send
        timeout: Timeout in seconds for requests without a body

    Returns:
        PreparedRequest

    Raises:
        InvalidBodyJSONError: If a body-carrying request has a non-JSON body
    """
    headers = collapse_headers(content.headers)
    url = apply_path_params(content.url, content.path_params)

    if not content.method.has_body:
        return PreparedRequest(method=content.method, url=url, headers=headers, timeout=timeout)

    try:
        payload = json.loads(content.body)
    except json.JSONDecodeError as e:
        raise InvalidBodyJSONError(
            f"Request body is not valid JSON: {e.msg}",
            {"line": e.lineno, "column": e.colno},
        )

    if not _has_header(headers, "content-type"):
        headers["Content-Type"] = JSON_CONTENT_TYPE

    return PreparedRequest(
        method=content.method,
        url=url,
        headers=headers,
        body=json.dumps(payload, separators=(",", ":")).encode("utf-8"),
    )


class RequestExecutor:
    """
    Sends tab requests and records their responses.

    Closing a tab does not cancel its call. A completion whose tab is gone is
    discarded; ``cancel`` is the explicit way to stop a call.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        tab_store: Optional[TabSessionStore] = None,
        config: Optional[HTTPConfig] = None,
    ):
        self.config = config or get_config().http
        self.transport = transport or AiohttpTransport(self.config)
        self.tab_store = tab_store or TabSessionStore()
        self._tasks: Dict[int, Set[asyncio.Task]] = {}
        self._inflight: Dict[int, int] = {}
        self._listeners: List[StateListener] = []

    # State observation

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a ``(tab_id, state)`` listener; returns its unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def status(self, tab_id: int) -> ExecutionState:
        if self._inflight.get(tab_id):
            return ExecutionState.PENDING
        return ExecutionState.IDLE

    def _emit(self, tab_id: int, state: ExecutionState) -> None:
        for listener in list(self._listeners):
            try:
                listener(tab_id, state)
            except Exception as e:
                logger.error(f"Executor listener {listener!r} failed: {e}")

    # Sending

    async def execute(self, content: TabContent) -> Result[ResponseRecord]:
        """
        Send one request without touching any store.

        Returns:
            Success with the recorded response, or a failure carrying
            ``INVALID_BODY_JSON`` or ``TRANSPORT_ERROR``
        """
        try:
            prepared = build_request(content, self.config.request_timeout)
        except InvalidBodyJSONError as e:
            logger.info(f"Not sending {content.method.value} {content.url}: {e.message}")
            return Result.from_exception(e)

        started = time.perf_counter()
        try:
            response = await self.transport.send(
                prepared.method.value,
                prepared.url,
                prepared.headers,
                prepared.body,
                prepared.timeout,
            )
        except TransportError as e:
            return Result.from_exception(e)

        duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"{prepared.method.value} {prepared.url} -> {response.status} ({duration_ms}ms)"
        )
        return Result.success(ResponseRecord(**response.model_dump(), duration_ms=duration_ms))

    async def submit(self, tab_id: int) -> Result[ResponseRecord]:
        """
        Send a tab's request and write the response back to that tab.

        On transport failure the previous response stays in place with its
        ``error`` marker set. An invalid JSON body leaves the tab untouched.
        """
        tab = self.tab_store.get_tab(tab_id)
        if tab is None:
            return Result.failure(ErrorKind.TAB_NOT_FOUND, f"Tab {tab_id} is not open")

        self._inflight[tab_id] = self._inflight.get(tab_id, 0) + 1
        self._emit(tab_id, ExecutionState.PENDING)
        started = time.perf_counter()
        try:
            result = await self.execute(tab.content)
            self._record(tab_id, result, int((time.perf_counter() - started) * 1000))
            self._emit(tab_id, ExecutionState.SUCCESS if result.ok else ExecutionState.FAILED)
            return result
        finally:
            self._inflight[tab_id] -= 1
            if not self._inflight[tab_id]:
                del self._inflight[tab_id]
            self._emit(tab_id, ExecutionState.IDLE)

    def _record(self, tab_id: int, result: Result[ResponseRecord], duration_ms: int) -> None:
        current = self.tab_store.get_tab(tab_id)
        if current is None:
            logger.info(f"Discarding response for closed tab {tab_id}")
            return

        if result.ok:
            self.tab_store.update_tab_content(tab_id, {"response": result.value})
        elif result.error == ErrorKind.TRANSPORT_ERROR:
            response = current.content.response.model_copy(
                update={"error": result.message, "duration_ms": duration_ms}
            )
            self.tab_store.update_tab_content(tab_id, {"response": response})

    # Scheduling

    def schedule(self, tab_id: int) -> "asyncio.Task[Result[ResponseRecord]]":
        """Start a submit in the background and track it under its tab id."""
        task = asyncio.create_task(self.submit(tab_id))
        self._tasks.setdefault(tab_id, set()).add(task)
        task.add_done_callback(lambda done: self._forget(tab_id, done))
        return task

    def _forget(self, tab_id: int, task: asyncio.Task) -> None:
        tasks = self._tasks.get(tab_id)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            del self._tasks[tab_id]

    def pending(self, tab_id: Optional[int] = None) -> int:
        """Number of unfinished scheduled submits, for one tab or overall."""
        if tab_id is not None:
            return sum(1 for task in self._tasks.get(tab_id, ()) if not task.done())
        return sum(self.pending(key) for key in list(self._tasks))

    def cancel(self, tab_id: int) -> int:
        """Cancel the tab's scheduled submits; returns how many were cancelled."""
        cancelled = 0
        for task in list(self._tasks.get(tab_id, ())):
            if task.cancel():
                cancelled += 1
        if cancelled:
            logger.debug(f"Cancelled {cancelled} request(s) for tab {tab_id}")
        return cancelled

    async def wait_all(self) -> List[Result[ResponseRecord]]:
        """Wait for every scheduled submit; cancelled ones are left out."""
        tasks = [task for tasks in self._tasks.values() for task in tasks]
        if not tasks:
            return []
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        results = []
        for outcome in outcomes:
            if isinstance(outcome, asyncio.CancelledError):
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        return results
