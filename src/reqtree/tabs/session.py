"""
Tab Session Store

Owns the open request tabs, the active tab pointer and each tab's content.
Tabs are addressed by stable integer ids; positions shift when tabs close.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..core.exceptions import (
    ErrorKind,
    InvalidJSONError,
    InvalidURLError,
    NotARequestError,
)
from ..core.logging import get_logger
from ..core.models import (
    Header,
    Method,
    Param,
    ResponseRecord,
    Tab,
    TabContent,
    TabState,
    TreeNode,
)
from ..core.results import Result
from ..core.store import Store
from .params import (
    derive_url_from_params,
    ensure_trailing_param,
    merge_params_from_url,
    sync_path_params,
)

logger = get_logger(__name__)

CONTENT_FIELDS = frozenset(TabContent.model_fields)


# Actions


@dataclass(frozen=True)
class OpenTab:
    label: str
    content: TabContent


@dataclass(frozen=True)
class CloseTab:
    tab_id: int


@dataclass(frozen=True)
class SetActiveTab:
    tab_id: int


@dataclass(frozen=True)
class UpdateTabContent:
    tab_id: int
    changes: Mapping[str, Any] = field(default_factory=dict)


TabAction = Union[OpenTab, CloseTab, SetActiveTab, UpdateTabContent]


def _index_of(state: TabState, tab_id: int) -> Optional[int]:
    for index, tab in enumerate(state.tabs):
        if tab.id == tab_id:
            return index
    return None


def reduce_tabs(state: TabState, action: TabAction) -> TabState:
    """Apply one action to the tab session and return the new state."""
    if isinstance(action, OpenTab):
        new_id = state.last_tab_id + 1
        content = action.content.model_copy(update={"response": ResponseRecord()}, deep=True)
        tab = Tab(id=new_id, label=action.label, content=content)
        return TabState(active_tab_id=new_id, last_tab_id=new_id, tabs=[*state.tabs, tab])

    if isinstance(action, CloseTab):
        index = _index_of(state, action.tab_id)
        if index is None:
            return state
        tabs = state.tabs[:index] + state.tabs[index + 1 :]
        active_tab_id = state.active_tab_id
        if active_tab_id == action.tab_id:
            if not tabs:
                active_tab_id = -1
            else:
                # Preceding tab, or the new first tab when the first one closed
                active_tab_id = tabs[max(index - 1, 0)].id
        return state.model_copy(update={"tabs": tabs, "active_tab_id": active_tab_id})

    if isinstance(action, SetActiveTab):
        if action.tab_id == state.active_tab_id or _index_of(state, action.tab_id) is None:
            return state
        return state.model_copy(update={"active_tab_id": action.tab_id})

    if isinstance(action, UpdateTabContent):
        unknown = set(action.changes) - CONTENT_FIELDS
        if unknown:
            raise ValueError(f"Unknown tab content field(s): {sorted(unknown)}")
        index = _index_of(state, action.tab_id)
        if index is None:
            logger.debug(f"Content update ignored, tab {action.tab_id} is not open")
            return state
        tab = state.tabs[index]
        content = TabContent.model_validate({**dict(tab.content), **action.changes})
        tabs = list(state.tabs)
        tabs[index] = tab.model_copy(update={"content": content})
        return state.model_copy(update={"tabs": tabs})

    raise TypeError(f"Unknown tab action: {action!r}")


def pretty_json(text: str) -> str:
    """
    Re-indent JSON text with two spaces.

    Raises:
        InvalidJSONError: If the text is not valid JSON
    """
    try:
        return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
    except json.JSONDecodeError as e:
        raise InvalidJSONError(f"Not valid JSON: {e.msg}", {"position": e.pos})


class TabSessionStore(Store[TabState, TabAction]):
    """
    Open tab session container.

    Tab contents are deep copies, so editing a tab never touches the tree
    node it was opened from nor any other tab.
    """

    def __init__(self, initial_state: Optional[TabState] = None):
        super().__init__(reduce_tabs, initial_state or TabState.initial())

    # Lookup

    def get_tab(self, tab_id: int) -> Optional[Tab]:
        index = _index_of(self.state, tab_id)
        return None if index is None else self.state.tabs[index]

    def active_tab(self) -> Optional[Tab]:
        return self.get_tab(self.state.active_tab_id)

    @property
    def tab_ids(self) -> List[int]:
        return [tab.id for tab in self.state.tabs]

    # Session structure

    def open_tab(self, label: str, content: TabContent) -> TabState:
        """
        Append a tab holding a deep copy of ``content`` and activate it.

        The copy starts with the placeholder response, not the saved one.
        """
        return self.dispatch(OpenTab(label, content))

    def open_node(self, node: TreeNode) -> TabState:
        """
        Open a saved request from the collection tree.

        Raises:
            NotARequestError: If the node is a folder
        """
        if node.content is None:
            raise NotARequestError(f"Node {node.id} is a folder", {"node_id": node.id})
        return self.open_tab(node.label, node.content)

    def new_tab(self) -> TabState:
        return self.open_tab("New Tab", TabContent.blank())

    def close_tab(self, tab_id: int) -> TabState:
        return self.dispatch(CloseTab(tab_id))

    def set_active_tab(self, tab_id: int) -> TabState:
        return self.dispatch(SetActiveTab(tab_id))

    # Content edits

    def update_tab_content(self, tab_id: int, partial: Mapping[str, Any]) -> TabState:
        """
        Shallow-merge ``partial`` into one tab's content.

        Other tabs keep their identity. A missing tab id is a no-op, which is
        what late request completions rely on.
        """
        return self.dispatch(UpdateTabContent(tab_id, dict(partial)))

    def set_method(self, tab_id: int, method: Union[Method, str]) -> TabState:
        return self.update_tab_content(tab_id, {"method": method})

    def set_body(self, tab_id: int, body: str) -> TabState:
        return self.update_tab_content(tab_id, {"body": body})

    def set_headers(self, tab_id: int, headers: Sequence[Header]) -> TabState:
        return self.update_tab_content(tab_id, {"headers": list(headers)})

    def set_url(self, tab_id: int, url: str) -> Result[TabState]:
        """
        Store an edited URL and re-derive the parameter tables from it.

        The path table always follows the URL's placeholders. When the URL
        fails strict parsing the typed text is stored but the query table is
        left untouched and an ``INVALID_URL`` result is returned.
        """
        tab = self.get_tab(tab_id)
        if tab is None:
            return Result.failure(ErrorKind.TAB_NOT_FOUND, f"Tab {tab_id} is not open", self.state)

        changes: Dict[str, Any] = {
            "url": url,
            "path_params": sync_path_params(url, tab.content.path_params),
        }
        try:
            changes["params"] = merge_params_from_url(url, tab.content.params)
        except InvalidURLError as e:
            logger.debug(f"Params kept for tab {tab_id}: {e.message}")
            return Result.from_exception(e, self.update_tab_content(tab_id, changes))

        return Result.success(self.update_tab_content(tab_id, changes))

    def set_params(self, tab_id: int, params: Sequence[Param]) -> Result[TabState]:
        """Store an edited parameter table and rebuild the URL's query from it."""
        tab = self.get_tab(tab_id)
        if tab is None:
            return Result.failure(ErrorKind.TAB_NOT_FOUND, f"Tab {tab_id} is not open", self.state)

        url = derive_url_from_params(tab.content.url, params)
        return Result.success(
            self.update_tab_content(tab_id, {"url": url, "params": ensure_trailing_param(params)})
        )

    def set_path_params(self, tab_id: int, params: Sequence[Param]) -> Result[TabState]:
        """
        Store edited path placeholder values.

        The URL keeps its placeholders; they are filled in when the request is
        built.
        """
        if self.get_tab(tab_id) is None:
            return Result.failure(ErrorKind.TAB_NOT_FOUND, f"Tab {tab_id} is not open", self.state)
        return Result.success(self.update_tab_content(tab_id, {"path_params": list(params)}))

    def format_body(self, tab_id: int) -> Result[TabState]:
        """Pretty-print the request body; invalid JSON leaves it untouched."""
        tab = self.get_tab(tab_id)
        if tab is None:
            return Result.failure(ErrorKind.TAB_NOT_FOUND, f"Tab {tab_id} is not open", self.state)
        try:
            body = pretty_json(tab.content.body)
        except InvalidJSONError as e:
            return Result.from_exception(e, self.state)
        return Result.success(self.set_body(tab_id, body))

    def format_response(self, tab_id: int) -> Result[TabState]:
        """Pretty-print the recorded response data; invalid JSON leaves it untouched."""
        tab = self.get_tab(tab_id)
        if tab is None:
            return Result.failure(ErrorKind.TAB_NOT_FOUND, f"Tab {tab_id} is not open", self.state)
        try:
            data = pretty_json(tab.content.response.data)
        except InvalidJSONError as e:
            return Result.from_exception(e, self.state)
        response = tab.content.response.model_copy(update={"data": data})
        return Result.success(self.update_tab_content(tab_id, {"response": response}))
