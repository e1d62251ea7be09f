"""
reqtree Exception Hierarchy

Defines the exception hierarchy and the error kinds shared by stores, the
executor and the persistence layer.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Distinguishable failure kinds carried by exceptions and results."""

    PARENT_NOT_FOUND = "parent_not_found"
    NOT_A_FOLDER = "not_a_folder"
    NOT_A_REQUEST = "not_a_request"
    CANNOT_REMOVE_ROOT = "cannot_remove_root"
    DUPLICATE_NODE_ID = "duplicate_node_id"
    INVALID_URL = "invalid_url"
    INVALID_BODY_JSON = "invalid_body_json"
    INVALID_JSON = "invalid_json"
    TRANSPORT_ERROR = "transport_error"
    TAB_NOT_FOUND = "tab_not_found"
    STORAGE_ERROR = "storage_error"
    DOCUMENT_ERROR = "document_error"


class ReqtreeException(Exception):
    """Base exception for all reqtree errors."""

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class TreeError(ReqtreeException):
    """Structural collection tree errors. Always fatal to the attempted edit."""

    pass


class ParentNotFoundError(TreeError):
    """No node exists with the requested parent id."""

    kind = ErrorKind.PARENT_NOT_FOUND


class NotAFolderError(TreeError):
    """The target node is a saved request, not a folder."""

    kind = ErrorKind.NOT_A_FOLDER


class NotARequestError(TreeError):
    """The target node is a folder and cannot be opened as a tab."""

    kind = ErrorKind.NOT_A_REQUEST


class CannotRemoveRootError(TreeError):
    """The root folder (id 0) cannot be removed."""

    kind = ErrorKind.CANNOT_REMOVE_ROOT


class DuplicateNodeIdError(TreeError):
    """A replacement subtree reuses an id held elsewhere in the tree."""

    kind = ErrorKind.DUPLICATE_NODE_ID


class ValidationError(ReqtreeException):
    """User input validation errors."""

    pass


class InvalidURLError(ValidationError):
    """The URL does not pass strict parsing."""

    kind = ErrorKind.INVALID_URL


class InvalidBodyJSONError(ValidationError):
    """The request body is not valid JSON."""

    kind = ErrorKind.INVALID_BODY_JSON


class InvalidJSONError(ValidationError):
    """A text field could not be parsed as JSON for formatting."""

    kind = ErrorKind.INVALID_JSON


class TransportError(ReqtreeException):
    """Network or protocol failure while sending a request."""

    kind = ErrorKind.TRANSPORT_ERROR


class StorageError(ReqtreeException):
    """Snapshot storage and retrieval errors."""

    kind = ErrorKind.STORAGE_ERROR


class DocumentError(ReqtreeException):
    """API description documents that cannot be imported."""

    kind = ErrorKind.DOCUMENT_ERROR
