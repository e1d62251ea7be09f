"""
Query Parameter / URL Codec

Two-way mapping between a URL's query string and the ordered parameter table
of a tab, plus the `{name}` path placeholders filled from the path table.
"""

import re
from typing import Dict, List, Sequence, Tuple
from urllib.parse import SplitResult, parse_qsl, quote_plus, urlencode, urlsplit

from ..core.exceptions import InvalidURLError
from ..core.models import Param


def parse_url_strict(url: str) -> SplitResult:
    """
    Parse an absolute URL, rejecting anything a browser URL parser would.

    Args:
        url: URL string

    Returns:
        The split URL

    Raises:
        InvalidURLError: If the URL has no scheme or host, or a bad port
    """
    try:
        parts = urlsplit(url.strip())
        # Accessing port validates it
        parts.port
    except ValueError as e:
        raise InvalidURLError(f"Invalid URL: {url!r}", {"reason": str(e)})

    if not parts.scheme:
        raise InvalidURLError(f"URL missing scheme: {url!r}")
    if not parts.netloc or not parts.hostname:
        raise InvalidURLError(f"URL missing host: {url!r}")
    if any(char.isspace() for char in parts.netloc):
        raise InvalidURLError(f"URL host contains whitespace: {url!r}")

    return parts


def ensure_trailing_param(params: Sequence[Param]) -> List[Param]:
    """
    Return the rows with exactly one editable blank row guaranteed at the end.

    A blank row already in last position is kept as is.
    """
    rows = list(params)
    if not rows or not rows[-1].is_blank:
        rows.append(Param())
    return rows


def derive_params_from_url(url: str) -> List[Param]:
    """
    Derive the parameter table from a URL's query string.

    Every ``key=value`` pair becomes an enabled row in order of appearance,
    followed by the trailing blank row.

    Args:
        url: Absolute URL

    Returns:
        Parameter rows

    Raises:
        InvalidURLError: If the URL fails strict parsing
    """
    parts = parse_url_strict(url)
    params = [
        Param(enable=True, key=key, value=value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return ensure_trailing_param(params)


def derive_url_from_params(base_url: str, params: Sequence[Param]) -> str:
    """
    Rebuild a URL's query string from the parameter table.

    Only enabled rows with a non-blank key are serialized, in table order.
    Disabled and blank rows stay in the table but never reach the URL. A
    ``#fragment`` stays at the end, after the new query.

    Args:
        base_url: URL whose existing query string is replaced
        params: Parameter rows

    Returns:
        URL with the new query string
    """
    base, hash_mark, fragment = base_url.partition("#")
    base = base.split("?", 1)[0]
    query = urlencode(
        [(param.key, param.value) for param in params if param.enable and param.key.strip()]
    )
    if query:
        base = f"{base}?{query}"
    return f"{base}{hash_mark}{fragment}"


def merge_params_from_url(url: str, current: Sequence[Param]) -> List[Param]:
    """
    Compute the table after the user edits the URL.

    Disabled rows are not represented in the URL, so they are carried over
    from the current table ahead of the rows parsed from the new URL.

    Raises:
        InvalidURLError: If the URL fails strict parsing
    """
    parsed = derive_params_from_url(url)
    retained = [param for param in current if not param.enable]
    return retained + parsed


PATH_PLACEHOLDER = re.compile(r"\{([^{}]*)\}")


def _split_path(url: str) -> Tuple[str, str]:
    """Split ``url`` into the part before the query or fragment and the rest."""
    match = re.search(r"[?#]", url)
    if match is None:
        return url, ""
    return url[: match.start()], url[match.start():]


def path_param_names(url: str) -> List[str]:
    """Placeholder names in the URL's path, in order of first appearance."""
    names: List[str] = []
    for match in PATH_PLACEHOLDER.finditer(_split_path(url)[0]):
        name = match.group(1).strip()
        if name and name not in names:
            names.append(name)
    return names


def sync_path_params(url: str, current: Sequence[Param]) -> List[Param]:
    """
    Compute the path table for a URL.

    There is one row per placeholder, in URL order. Rows already in the table
    keep their value and enable flag; rows for placeholders that left the URL
    are dropped.
    """
    existing: Dict[str, Param] = {}
    for param in current:
        existing.setdefault(param.key.strip(), param)
    return [existing.get(name, Param(key=name)) for name in path_param_names(url)]


def apply_path_params(url: str, params: Sequence[Param]) -> str:
    """
    Substitute ``{name}`` placeholders in the URL's path.

    Enabled rows with a non-blank key and value are form-encoded into their
    placeholder. Placeholders without such a row stay as written.
    """
    values: Dict[str, str] = {}
    for param in params:
        key, value = param.key.strip(), param.value.strip()
        if param.enable and key and value:
            values[key] = quote_plus(value)

    if not values:
        return url

    path, rest = _split_path(url)
    path = PATH_PLACEHOLDER.sub(
        lambda match: values.get(match.group(1).strip(), match.group(0)), path
    )
    return f"{path}{rest}"
