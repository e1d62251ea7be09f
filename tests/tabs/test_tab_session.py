"""
Unit tests for the tab session store.
"""

import pytest

from reqtree.core.exceptions import ErrorKind, NotARequestError
from reqtree.core.models import (
    Header,
    Method,
    Param,
    ResponseRecord,
    TabContent,
    TabState,
    TreeNode,
)
from reqtree.tabs.session import CloseTab, TabSessionStore, pretty_json, reduce_tabs


def open_three(store: TabSessionStore) -> None:
    for label in ("A", "B", "C"):
        store.open_tab(label, TabContent.blank())


class TestOpenTabs:
    """Tests for opening tabs."""

    def test_initial_session(self, tab_store):
        assert tab_store.tab_ids == [0]
        assert tab_store.active_tab().label == "New Tab"

    def test_open_allocates_next_id_and_activates(self, tab_store, sample_request):
        state = tab_store.open_tab("Users", sample_request)

        assert state.last_tab_id == 1
        assert state.active_tab_id == 1
        assert tab_store.tab_ids == [0, 1]
        assert tab_store.get_tab(1).content.url == sample_request.url

    def test_open_resets_response(self, tab_store, sample_request):
        saved = sample_request.model_copy(
            update={"response": ResponseRecord(status=404, ok=False, data="gone")}
        )

        tab_store.open_tab("Users", saved)

        assert tab_store.get_tab(1).content.response == ResponseRecord()

    def test_open_copies_content(self, tab_store, sample_request):
        tab_store.open_tab("Users", sample_request)
        tab_store.open_tab("Users again", sample_request)

        first = tab_store.get_tab(1).content
        second = tab_store.get_tab(2).content
        assert first == second
        assert first.params is not second.params
        assert first.params is not sample_request.params

    def test_open_node(self, tab_store, sample_request):
        node = TreeNode(id=4, label="List users", content=sample_request)

        tab_store.open_node(node)

        assert tab_store.active_tab().label == "List users"

    def test_open_folder_raises(self, tab_store):
        with pytest.raises(NotARequestError):
            tab_store.open_node(TreeNode(id=2, label="Folder", children=[]))
        assert tab_store.tab_ids == [0]

    def test_new_tab(self, tab_store):
        tab_store.new_tab()

        tab = tab_store.active_tab()
        assert tab.id == 1
        assert tab.content == TabContent.blank()


class TestCloseTabs:
    """Tests for closing tabs and moving the active pointer."""

    def test_close_active_selects_preceding(self, tab_store):
        open_three(tab_store)
        tab_store.set_active_tab(2)

        state = tab_store.close_tab(2)

        assert state.active_tab_id == 1
        assert tab_store.tab_ids == [0, 1, 3]

    def test_close_first_active_selects_new_first(self, tab_store):
        open_three(tab_store)
        tab_store.set_active_tab(0)

        assert tab_store.close_tab(0).active_tab_id == 1

    def test_close_inactive_keeps_active(self, tab_store):
        open_three(tab_store)

        assert tab_store.close_tab(1).active_tab_id == 3

    def test_close_last_tab_empties_session(self, tab_store):
        state = tab_store.close_tab(0)

        assert state.tabs == []
        assert state.active_tab_id == -1
        assert tab_store.active_tab() is None

    def test_ids_are_not_reused(self, tab_store):
        tab_store.close_tab(0)
        tab_store.new_tab()

        assert tab_store.tab_ids == [1]

    def test_close_absent_tab_is_noop(self, tab_store):
        before = tab_store.state
        assert tab_store.close_tab(42) is before

    def test_reducer_returns_same_state_for_unknown_tab(self):
        state = TabState.initial()
        assert reduce_tabs(state, CloseTab(9)) is state


class TestActiveTab:
    """Tests for switching the active tab."""

    def test_set_active(self, tab_store):
        open_three(tab_store)
        assert tab_store.set_active_tab(1).active_tab_id == 1

    def test_set_active_absent_is_noop(self, tab_store):
        before = tab_store.state
        assert tab_store.set_active_tab(99) is before


class TestUpdateContent:
    """Tests for content edits."""

    def test_update_touches_only_target_tab(self, tab_store):
        open_three(tab_store)
        before = tab_store.state

        after = tab_store.update_tab_content(2, {"url": "http://example.com/"})

        assert tab_store.get_tab(2).content.url == "http://example.com/"
        for old, new in zip(before.tabs, after.tabs):
            if old.id != 2:
                assert old is new

    def test_update_absent_tab_is_noop(self, tab_store):
        before = tab_store.state
        assert tab_store.update_tab_content(77, {"body": "{}"}) is before

    def test_unknown_field_raises(self, tab_store):
        with pytest.raises(ValueError):
            tab_store.update_tab_content(0, {"colour": "red"})

    def test_set_method_accepts_string(self, tab_store):
        tab_store.set_method(0, "put")
        assert tab_store.get_tab(0).content.method is Method.PUT

    def test_set_headers(self, tab_store):
        headers = [Header(key="X-A", value="1"), Header(key="X-A", value="2")]

        tab_store.set_headers(0, headers)

        assert tab_store.get_tab(0).content.headers == headers

    def test_subscribers_see_updates(self, tab_store):
        seen = []
        tab_store.subscribe(lambda old, new: seen.append(new.tabs[0].content.body))

        tab_store.set_body(0, '{"a": 1}')

        assert seen == ['{"a": 1}']


class TestURLAndParams:
    """Tests for URL edits and parameter table edits."""

    def test_set_url_derives_params(self, tab_store):
        result = tab_store.set_url(0, "http://x/?a=1")

        assert result.ok
        content = tab_store.get_tab(0).content
        assert content.url == "http://x/?a=1"
        assert content.params == [Param(key="a", value="1"), Param()]

    def test_set_url_then_disable_param(self, tab_store):
        tab_store.set_url(0, "http://x/?a=1")

        result = tab_store.set_params(
            0, [Param(enable=False, key="a", value="1"), Param()]
        )

        assert result.ok
        content = tab_store.get_tab(0).content
        assert content.url == "http://x/"
        assert content.params == [Param(enable=False, key="a", value="1"), Param()]

    def test_url_edit_keeps_disabled_params(self, tab_store):
        tab_store.set_url(0, "http://x/?a=1")
        tab_store.set_params(0, [Param(enable=False, key="a", value="1"), Param()])

        tab_store.set_url(0, "http://x/?b=2")

        assert tab_store.get_tab(0).content.params == [
            Param(enable=False, key="a", value="1"),
            Param(key="b", value="2"),
            Param(),
        ]

    def test_invalid_url_keeps_params(self, tab_store):
        tab_store.set_url(0, "http://x/?a=1")
        params = tab_store.get_tab(0).content.params

        result = tab_store.set_url(0, "http//x/?a=1&b=2")

        assert not result.ok
        assert result.error is ErrorKind.INVALID_URL
        content = tab_store.get_tab(0).content
        assert content.url == "http//x/?a=1&b=2"
        assert content.params == params

    def test_set_params_ensures_trailing_row(self, tab_store):
        tab_store.set_url(0, "http://x/")

        tab_store.set_params(0, [Param(key="q", value="term")])

        content = tab_store.get_tab(0).content
        assert content.url == "http://x/?q=term"
        assert content.params == [Param(key="q", value="term"), Param()]

    def test_url_edit_on_missing_tab(self, tab_store):
        result = tab_store.set_url(5, "http://x/")
        assert result.error is ErrorKind.TAB_NOT_FOUND

    def test_param_edit_on_missing_tab(self, tab_store):
        result = tab_store.set_params(5, [])
        assert result.error is ErrorKind.TAB_NOT_FOUND


class TestPathParams:
    """Tests for the path placeholder table."""

    def test_url_edit_creates_rows(self, tab_store):
        tab_store.set_url(0, "http://x/users/{userId}/posts/{postId}")

        assert tab_store.get_tab(0).content.path_params == [
            Param(key="userId"),
            Param(key="postId"),
        ]

    def test_url_edit_keeps_values_and_drops_stale_rows(self, tab_store):
        tab_store.set_url(0, "http://x/users/{userId}/posts/{postId}")
        tab_store.set_path_params(
            0, [Param(key="userId", value="7"), Param(key="postId", value="9")]
        )

        tab_store.set_url(0, "http://x/users/{userId}?page=2")

        content = tab_store.get_tab(0).content
        assert content.path_params == [Param(key="userId", value="7")]
        assert content.params == [Param(key="page", value="2"), Param()]

    def test_invalid_url_still_syncs_path_rows(self, tab_store):
        result = tab_store.set_url(0, "/users/{userId}")

        assert result.error is ErrorKind.INVALID_URL
        assert tab_store.get_tab(0).content.path_params == [Param(key="userId")]

    def test_set_path_params_leaves_url(self, tab_store):
        tab_store.set_url(0, "http://x/users/{userId}")

        result = tab_store.set_path_params(0, [Param(key="userId", value="7")])

        assert result.ok
        content = tab_store.get_tab(0).content
        assert content.url == "http://x/users/{userId}"
        assert content.path_params == [Param(key="userId", value="7")]

    def test_path_edit_on_missing_tab(self, tab_store):
        assert tab_store.set_path_params(5, []).error is ErrorKind.TAB_NOT_FOUND


class TestFormatting:
    """Tests for JSON pretty-printing of body and response."""

    def test_pretty_json(self):
        assert pretty_json('{"a":[1,2]}') == '{\n  "a": [\n    1,\n    2\n  ]\n}'

    def test_format_body(self, tab_store):
        tab_store.set_body(0, '{"name":"alice"}')

        result = tab_store.format_body(0)

        assert result.ok
        assert tab_store.get_tab(0).content.body == '{\n  "name": "alice"\n}'

    def test_format_invalid_body_leaves_state(self, tab_store):
        tab_store.set_body(0, "{not json")
        before = tab_store.state

        result = tab_store.format_body(0)

        assert result.error is ErrorKind.INVALID_JSON
        assert tab_store.state is before

    def test_format_response(self, tab_store):
        tab_store.update_tab_content(0, {"response": ResponseRecord(data="[1]")})

        assert tab_store.format_response(0).ok
        assert tab_store.get_tab(0).content.response.data == "[\n  1\n]"

    def test_format_empty_response_is_invalid(self, tab_store):
        assert tab_store.format_response(0).error is ErrorKind.INVALID_JSON

    def test_format_missing_tab(self, tab_store):
        assert tab_store.format_body(3).error is ErrorKind.TAB_NOT_FOUND
