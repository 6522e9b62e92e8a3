"""Body Parsing — JSON and URL-encoded request bodies to structured payloads.

Invariants:
    - JSON bodies must be an object or an array (strict mode); anything else is malformed
    - Empty JSON/form bodies parse to {}
    - URL-encoded keys nest with brackets: a[b]=1 -> {"a": {"b": "1"}}, a[]=1 -> {"a": ["1"]}
    - Repeated plain keys collect into a list in arrival order
    - Nesting deeper than MAX_FORM_DEPTH keeps the remainder as one literal key
    - Every parse failure raises MalformedBodyError — never a bare ValueError

Design Decisions:
    - Numeric bracket segments stay dict keys (a[0]=x -> {"a": {"0": "x"}})
"""

import json
import re
from typing import Any
from urllib.parse import parse_qsl

from streamgate.core.errors import MalformedBodyError

FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"
MAX_FORM_DEPTH = 5

_KEY_PATTERN = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_SEGMENT_PATTERN = re.compile(r"\[([^\[\]]*)\]")


def media_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


def charset(content_type: str, default: str = "utf-8") -> str:
    for param in content_type.split(";")[1:]:
        name, _, value = param.partition("=")
        if name.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"').lower()
    return default


def is_json(content_type: str) -> bool:
    mt = media_type(content_type)
    return mt == "application/json" or (mt.startswith("application/") and mt.endswith("+json"))


def is_form(content_type: str) -> bool:
    return media_type(content_type) == FORM_MEDIA_TYPE


def is_parsable(content_type: str) -> bool:
    return is_json(content_type) or is_form(content_type)


def parse_body(content_type: str, raw: bytes) -> Any:
    """Parse raw bytes according to content_type. Returns None for other media types."""
    if is_json(content_type):
        return parse_json_body(raw, charset(content_type))
    if is_form(content_type):
        return parse_form_body(raw, charset(content_type))
    return None


def _decode(raw: bytes, encoding: str, content_type: str) -> str:
    try:
        return raw.decode(encoding)
    except LookupError:
        raise MalformedBodyError(f"Unsupported charset '{encoding}'", content_type)
    except UnicodeDecodeError:
        raise MalformedBodyError(f"Body is not valid {encoding}", content_type)


def parse_json_body(raw: bytes, encoding: str = "utf-8") -> Any:
    if not raw.strip():
        return {}
    text = _decode(raw, encoding, "application/json")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedBodyError(
            f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}",
            "application/json",
        )
    if not isinstance(payload, (dict, list)):
        raise MalformedBodyError(
            "JSON body must be an object or an array", "application/json",
        )
    return payload


def parse_form_body(raw: bytes, encoding: str = "utf-8") -> dict[str, Any]:
    if not raw.strip():
        return {}
    text = _decode(raw, encoding, FORM_MEDIA_TYPE)
    result: dict[str, Any] = {}
    for key, value in parse_qsl(text, keep_blank_values=True, encoding=encoding):
        _assign(result, split_form_key(key), value, key)
    return result


def split_form_key(key: str) -> list[str]:
    """Split a bracketed form key into path segments, honouring MAX_FORM_DEPTH."""
    match = _KEY_PATTERN.match(key)
    if not match:
        return [key]
    segments = _SEGMENT_PATTERN.findall(match.group(2))
    if len(segments) > MAX_FORM_DEPTH:
        kept = segments[:MAX_FORM_DEPTH]
        rest = "".join(f"[{s}]" for s in segments[MAX_FORM_DEPTH:])
        segments = kept + [rest]
    return [match.group(1)] + segments


def _assign(container: dict[str, Any], path: list[str], value: str, raw_key: str) -> None:
    head, rest = path[0], path[1:]
    if not rest:
        _set_leaf(container, head, value)
        return
    child_is_list = rest[0] == ""
    existing = container.get(head)
    if existing is None:
        existing = [] if child_is_list else {}
        container[head] = existing
    if child_is_list:
        if not isinstance(existing, list):
            raise MalformedBodyError(
                f"Conflicting form field structure for '{raw_key}'", FORM_MEDIA_TYPE,
            )
        if len(rest) == 1:
            existing.append(value)
            return
        child: dict[str, Any] = {}
        existing.append(child)
        _assign(child, rest[1:], value, raw_key)
        return
    if not isinstance(existing, dict):
        raise MalformedBodyError(
            f"Conflicting form field structure for '{raw_key}'", FORM_MEDIA_TYPE,
        )
    _assign(existing, rest, value, raw_key)


def _set_leaf(container: dict[str, Any], key: str, value: str) -> None:
    if key not in container:
        container[key] = value
        return
    current = container[key]
    if isinstance(current, list):
        current.append(value)
    elif isinstance(current, str):
        container[key] = [current, value]
    else:
        raise MalformedBodyError(
            f"Conflicting form field structure for '{key}'", FORM_MEDIA_TYPE,
        )
