"""Cookie Parsing — Cookie header to a plain mapping.

Invariants:
    - Values prefixed with "j:" are decoded as JSON; undecodable ones stay strings
    - Later duplicates of a cookie name win (browser send order)
"""

import json
from typing import Any

from starlette.requests import cookie_parser

JSON_COOKIE_PREFIX = "j:"


def decode_cookie_value(value: str) -> Any:
    if not value.startswith(JSON_COOKIE_PREFIX):
        return value
    try:
        return json.loads(value[len(JSON_COOKIE_PREFIX):])
    except json.JSONDecodeError:
        return value


def parse_cookie_header(header: str) -> dict[str, Any]:
    if not header:
        return {}
    return {
        name: decode_cookie_value(value)
        for name, value in cookie_parser(header).items()
    }
