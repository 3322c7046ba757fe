# src/eventsocket/core/headers.py
"""
Header key normalization and value unescaping.
The switch is inconsistent about header casing between its plain and JSON
encodings; every key is folded to one convention (Content-Type, Job-Uuid,
Variable_sip_call_id) so lookups never depend on the encoding.
"""

import re
from typing import Dict, Iterable, Tuple
from urllib.parse import unquote_plus

# A '%' not followed by two hex digits makes the whole value undecodable
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

_VARIABLE_PREFIX = "ariable_"


def normalize_key(key: str) -> str:
    """
    Canonicalize a header key.

    - keys starting with '_' are returned untouched
    - channel variables (variable_*) get a capital V and the rest lower-cased
    - anything else is lower-cased with the first character and every
      character after '-' or '_' upper-cased

    Examples:
        job-uuid             -> Job-Uuid
        variable_sip_call_id -> Variable_sip_call_id
        _body                -> _body
    """
    if not key or key[0] == "_":
        return key
    lowered = key.lower()
    if len(key) > 9 and lowered[1:9] == _VARIABLE_PREFIX:
        return "V" + lowered[1:]

    chars = []
    upper_next = True
    for c in lowered:
        chars.append(c.upper() if upper_next else c)
        upper_next = c in "-_"
    return "".join(chars)


def unescape_value(value: str) -> str:
    """
    Decode a percent-escaped (query-string style) header value.
    Values that fail to decode are returned as-is.
    """
    if "%" not in value and "+" not in value:
        return value
    if _BAD_ESCAPE.search(value):
        return value
    try:
        return unquote_plus(value, errors="strict")
    except UnicodeDecodeError:
        return value


def copy_headers(pairs: Iterable[Tuple[str, str]], decode: bool) -> Dict[str, str]:
    """
    Build a normalized header mapping from raw (key, value) pairs.

    The first occurrence of a key wins. Values are unescaped when decode is set.
    """
    headers: Dict[str, str] = {}
    for key, value in pairs:
        key = normalize_key(key)
        if key in headers:
            continue
        headers[key] = unescape_value(value) if decode else value
    return headers
