"""
OpenAPI Import Adapter

Converts a parsed OpenAPI 3 document into id-less tree literals ready for
``TreeStore.add_node``: one folder for the document, one sub-folder per
server and one saved request per operation.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..core.exceptions import DocumentError
from ..core.logging import get_logger
from ..core.models import Header, Method, NodeLiteral, Param, TabContent
from ..tabs.params import derive_url_from_params, ensure_trailing_param, sync_path_params

logger = get_logger(__name__)

DEFAULT_SERVER = "/"


def parse_document(text: str) -> Dict[str, Any]:
    """
    Parse an OpenAPI document from YAML or JSON text.

    Raises:
        DocumentError: If the text is not a YAML/JSON mapping
    """
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DocumentError(f"Could not parse API document: {e}")

    if not isinstance(document, dict):
        raise DocumentError("API document must be a mapping at top level")
    return document


def load_document(path: Path) -> Dict[str, Any]:
    """
    Read and parse an OpenAPI document file.

    Raises:
        DocumentError: If the file cannot be read or parsed
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DocumentError(f"Failed to read API document {path}: {e}")
    return parse_document(text)


def _resolve(document: Dict[str, Any], obj: Any) -> Any:
    """Follow a local ``$ref`` (``#/...``); other references are returned as is."""
    seen = set()
    while isinstance(obj, dict) and isinstance(obj.get("$ref"), str):
        ref = obj["$ref"]
        if not ref.startswith("#/") or ref in seen:
            return obj
        seen.add(ref)
        target: Any = document
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(target, dict) or part not in target:
                logger.warning(f"Unresolvable reference {ref}")
                return {}
            target = target[part]
        obj = target
    return obj


def _example_text(parameter: Dict[str, Any]) -> str:
    schema = parameter.get("schema") or {}
    for value in (parameter.get("example"), schema.get("example"), schema.get("default")):
        if value is None:
            continue
        if isinstance(value, str):
            return value
        return json.dumps(value)
    return ""


def _body_example(document: Dict[str, Any], operation: Dict[str, Any]) -> str:
    request_body = _resolve(document, operation.get("requestBody") or {})
    media = (request_body.get("content") or {}).get("application/json") or {}
    if "example" in media:
        return json.dumps(media["example"], indent=2)
    examples = media.get("examples") or {}
    for example in examples.values():
        example = _resolve(document, example)
        if isinstance(example, dict) and "value" in example:
            return json.dumps(example["value"], indent=2)
    return ""


def _operation_content(
    document: Dict[str, Any],
    server: str,
    path: str,
    path_item: Dict[str, Any],
    method: Method,
) -> TabContent:
    operation = path_item.get(method.value.lower()) or {}
    parameters = [
        _resolve(document, parameter)
        for parameter in (path_item.get("parameters") or []) + (operation.get("parameters") or [])
    ]

    params: List[Param] = []
    path_params: Dict[str, Param] = {}
    headers: List[Header] = list(TabContent.blank().headers)
    for parameter in parameters:
        if not isinstance(parameter, dict) or "name" not in parameter:
            continue
        row = {
            "enable": bool(parameter.get("required", False)),
            "key": str(parameter["name"]),
            "value": _example_text(parameter),
        }
        location = parameter.get("in")
        if location == "query":
            params.append(Param(**row))
        elif location == "path":
            # Always required; operation-level rows override path-level ones
            path_params[row["key"]] = Param(**{**row, "enable": True})
        elif location == "header":
            headers.append(Header(**row))

    if not path.startswith("/"):
        path = f"/{path}"
    url = derive_url_from_params(f"{server.rstrip('/')}{path}", params)

    return TabContent(
        method=method,
        url=url,
        body=_body_example(document, operation) if method.has_body else "",
        headers=headers,
        params=ensure_trailing_param(params),
        path_params=sync_path_params(url, list(path_params.values())),
    )


def _server_urls(document: Dict[str, Any]) -> List[str]:
    urls = []
    for server in document.get("servers") or []:
        url = server.get("url") if isinstance(server, dict) else None
        if isinstance(url, str):
            urls.append(url)
        else:
            logger.warning(f"Skipping server entry without url: {server!r}")
    return urls or [DEFAULT_SERVER]


def build_collection(document: Dict[str, Any], title: Optional[str] = None) -> NodeLiteral:
    """
    Build the collection literal for an OpenAPI document.

    Args:
        document: Parsed OpenAPI document
        title: Folder label override (defaults to ``info.title``)

    Returns:
        Folder literal: document -> servers -> one request per operation
    """
    paths = document.get("paths") or {}
    if not isinstance(paths, dict):
        raise DocumentError("'paths' must be a mapping")

    label = title or (document.get("info") or {}).get("title") or "OpenAPI"

    server_folders = []
    for server in _server_urls(document):
        requests = []
        for path in sorted(paths):
            path_item = _resolve(document, paths[path]) or {}
            for method in Method:
                if method.value.lower() not in path_item:
                    continue
                requests.append(
                    NodeLiteral(
                        label=f"{method.value} {path}",
                        content=_operation_content(document, server, path, path_item, method),
                    )
                )
        server_folders.append(NodeLiteral(label=server, children=requests))

    logger.info(
        f"Built collection '{label}' with {len(server_folders)} server(s) "
        f"and {len(paths)} path(s)"
    )
    return NodeLiteral(label=str(label), expanded=True, children=server_folders)


def build_literals(document: Dict[str, Any]) -> List[NodeLiteral]:
    """Literals to insert under the tree root for one document."""
    return [build_collection(document)]
