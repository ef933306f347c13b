"""Canonical text rendering of per-file sensor brandings."""

from __future__ import annotations

import json
from enum import Enum
from typing import Dict, Mapping, Optional, Union

OUTPUT_INDENT = 2

# HTML-sensitive characters, escaped inside JSON string literals.
_HTML_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


def format_brandings(brandings: Mapping[str, Union[str, Enum]]) -> str:
    """Render ``name -> branding`` as 2-space indented JSON, keys sorted by name.

    An empty mapping renders as ``{}``. Non-ASCII text is kept as is while
    ``<``, ``>`` and ``&`` are written as ``\\u003c`` style escapes.
    """
    ordered = {name: _label(brandings[name]) for name in sorted(brandings)}
    text = json.dumps(ordered, indent=OUTPUT_INDENT, ensure_ascii=False)
    return text.translate(_HTML_ESCAPES)


def load_brandings(payload: str) -> Optional[Dict[str, str]]:
    """Return the brandings stored in ``payload`` or ``None`` for error text.

    Successful results and error messages share one store keyspace, so the
    payload shape is the only way to tell them apart.
    """
    try:
        data = json.loads(payload)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    if not all(isinstance(value, str) for value in data.values()):
        return None
    return data


def _label(branding: Union[str, Enum]) -> str:
    if isinstance(branding, Enum):
        return str(branding.value)
    return str(branding)
