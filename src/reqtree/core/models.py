"""
reqtree Core Data Models

Defines the request, response, collection and tab data structures shared by
every store.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Method(str, Enum):
    """HTTP methods selectable for a request."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    HEAD = "HEAD"
    TRACE = "TRACE"

    @property
    def has_body(self) -> bool:
        """Whether requests with this method carry a JSON body."""
        return self in BODY_METHODS


BODY_METHODS = frozenset({Method.POST, Method.PUT, Method.PATCH})


class Header(BaseModel):
    """One row of the header table."""

    enable: bool = Field(default=True, description="Whether the row is sent")
    key: str = Field(default="", description="Header name")
    value: str = Field(default="", description="Header value")

    model_config = ConfigDict(frozen=True)


class Param(BaseModel):
    """One row of the query parameter table."""

    enable: bool = Field(default=True, description="Whether the row is in the URL")
    key: str = Field(default="", description="Parameter name")
    value: str = Field(default="", description="Parameter value")

    model_config = ConfigDict(frozen=True)

    @property
    def is_blank(self) -> bool:
        return self.enable and not self.key.strip() and not self.value.strip()


class ResponseRecord(BaseModel):
    """Recorded response of the last send, always present on a tab."""

    url: str = Field(default="", description="Final response URL")
    status: int = Field(default=200, description="HTTP status code")
    ok: bool = Field(default=True, description="Whether status is 2xx")
    headers: Dict[str, str] = Field(
        default_factory=dict, description="Response headers, last value wins"
    )
    raw_headers: Dict[str, List[str]] = Field(
        default_factory=dict, description="Response headers with every value"
    )
    data: str = Field(default="", description="Response body text")
    error: Optional[str] = Field(
        default=None, description="Failure marker of the last send attempt"
    )
    duration_ms: Optional[int] = Field(
        default=None, description="Elapsed time of the last send"
    )

    model_config = ConfigDict(frozen=True)

    @property
    def failed(self) -> bool:
        return self.error is not None


class TabContent(BaseModel):
    """Declarative content of a request, shared by tree leaves and tabs."""

    method: Method = Field(default=Method.GET, description="HTTP method")
    url: str = Field(default="", description="Request URL including query")
    body: str = Field(default="", description="Raw body, parsed as JSON on send")
    headers: List[Header] = Field(default_factory=list, description="Header rows")
    params: List[Param] = Field(default_factory=list, description="Query rows")
    path_params: List[Param] = Field(
        default_factory=list, description="Values for {name} placeholders in the path"
    )
    response: ResponseRecord = Field(
        default_factory=ResponseRecord, description="Last recorded response"
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("method", mode="before")
    @classmethod
    def validate_method(cls, v: Any) -> Any:
        if isinstance(v, str):
            if v.upper() not in Method.__members__:
                raise ValueError(f"Invalid HTTP method: {v}")
            return v.upper()
        return v

    @classmethod
    def blank(cls) -> "TabContent":
        """Content of a fresh, unsaved tab."""
        return cls(
            headers=[
                Header(key="Accept", value="*/*"),
                Header(key="Content-Type", value="application/json"),
            ],
            params=[Param()],
        )


class NodeLiteral(BaseModel):
    """
    Tree node without an id, as produced by importers and "new" actions.

    Exactly one of ``children`` (folder) or ``content`` (saved request) is set.
    """

    label: str = Field(description="Display label")
    expanded: bool = Field(default=False, description="Folder expansion state")
    children: Optional[List["NodeLiteral"]] = Field(default=None)
    content: Optional[TabContent] = Field(default=None)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_folder_xor_leaf(self) -> "NodeLiteral":
        if (self.children is None) == (self.content is None):
            raise ValueError(
                f"Node '{self.label}' must have exactly one of children or content"
            )
        return self

    @property
    def is_folder(self) -> bool:
        return self.children is not None


class TreeNode(BaseModel):
    """Materialized collection tree node."""

    id: int = Field(ge=0, description="Unique node id")
    label: str = Field(description="Display label")
    expanded: bool = Field(default=False, description="Folder expansion state")
    children: Optional[List["TreeNode"]] = Field(default=None)
    content: Optional[TabContent] = Field(default=None)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_folder_xor_leaf(self) -> "TreeNode":
        if (self.children is None) == (self.content is None):
            raise ValueError(
                f"Node {self.id} must have exactly one of children or content"
            )
        return self

    @property
    def is_folder(self) -> bool:
        return self.children is not None


class Tab(BaseModel):
    """Open, editable working copy of a request."""

    id: int = Field(ge=0, description="Unique tab id within the session")
    label: str = Field(description="Tab title")
    content: TabContent = Field(default_factory=TabContent)

    model_config = ConfigDict(frozen=True)


class TabState(BaseModel):
    """Open tabs and the active tab pointer."""

    active_tab_id: int = Field(default=-1, description="Active tab id or -1")
    last_tab_id: int = Field(default=0, description="Last allocated tab id")
    tabs: List[Tab] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_active_tab(self) -> "TabState":
        if self.active_tab_id == -1:
            return self
        if all(tab.id != self.active_tab_id for tab in self.tabs):
            raise ValueError(f"Active tab {self.active_tab_id} is not open")
        return self

    @classmethod
    def initial(cls) -> "TabState":
        """Session start: one blank tab, active."""
        return cls(
            active_tab_id=0,
            last_tab_id=0,
            tabs=[Tab(id=0, label="New Tab", content=TabContent.blank())],
        )


NodeLiteral.model_rebuild()
TreeNode.model_rebuild()
