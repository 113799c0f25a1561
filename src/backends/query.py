"""Query string encoding for the Strapi REST API.

Strapi's filter, sort and populate parameters are nested structures, so they
are sent with bracket notation (``filters[title][$contains]=news``) instead of
JSON-stringified values.
"""

from typing import Any, Iterator
from urllib.parse import quote


def _scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten_params(params: dict[str, Any], prefix: str = "") -> Iterator[tuple[str, str]]:
    """
    Flatten a nested parameter map into bracketed key/value pairs.

    Lists are indexed (``sort[0]=title``), dicts are keyed
    (``pagination[page]=1``). Empty containers produce no pairs.
    """
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, dict):
            yield from flatten_params(value, name)
        elif isinstance(value, (list, tuple)):
            yield from flatten_params({str(i): item for i, item in enumerate(value)}, name)
        else:
            yield name, _scalar(value)


def encode_query(params: dict[str, Any] | None) -> str:
    """
    Encode parameters as a query string using nested bracket notation.

    Args:
        params: Query parameters, possibly nested

    Returns:
        Query string without the leading ``?``, empty when there is nothing to send
    """
    if not params:
        return ""
    return "&".join(
        f"{quote(name, safe='[]')}={quote(value, safe='')}"
        for name, value in flatten_params(params)
    )
