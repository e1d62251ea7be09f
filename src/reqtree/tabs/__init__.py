"""
reqtree tab session

Open request tabs and the URL/parameter table synchronization.
"""

from .params import (
    apply_path_params,
    derive_params_from_url,
    derive_url_from_params,
    ensure_trailing_param,
    merge_params_from_url,
    parse_url_strict,
    path_param_names,
    sync_path_params,
)
from .session import TabSessionStore, pretty_json, reduce_tabs

__all__ = [
    "TabSessionStore",
    "reduce_tabs",
    "pretty_json",
    "derive_params_from_url",
    "derive_url_from_params",
    "ensure_trailing_param",
    "merge_params_from_url",
    "parse_url_strict",
    "apply_path_params",
    "path_param_names",
    "sync_path_params",
]
