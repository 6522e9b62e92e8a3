"""Query Parameter Pollution — deterministic collapse of duplicated query keys.

Invariants:
    - A key that appears more than once keeps only its LAST value
    - Whitelisted keys keep every value, in original order
    - First-appearance order of keys is preserved in the output
    - Same input always yields the same output (pure, no IO)
"""

from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode


@dataclass(frozen=True)
class CollapsedQuery:
    """Result of collapsing a query string."""
    params: list[tuple[str, str]]
    polluted: dict[str, list[str]] = field(default_factory=dict)

    @property
    def query_string(self) -> str:
        return urlencode(self.params)


def collapse_duplicate_params(
    pairs: list[tuple[str, str]], whitelist: tuple[str, ...] = (),
) -> CollapsedQuery:
    """Collapse duplicated keys to their last value; record the dropped multi-values."""
    grouped: dict[str, list[str]] = {}
    for key, value in pairs:
        grouped.setdefault(key, []).append(value)

    params: list[tuple[str, str]] = []
    polluted: dict[str, list[str]] = {}
    for key, values in grouped.items():
        if key in whitelist:
            params.extend((key, v) for v in values)
            continue
        if len(values) > 1:
            polluted[key] = values
        params.append((key, values[-1]))
    return CollapsedQuery(params=params, polluted=polluted)


def collapse_query_string(raw: str, whitelist: tuple[str, ...] = ()) -> CollapsedQuery:
    return collapse_duplicate_params(
        parse_qsl(raw, keep_blank_values=True), whitelist,
    )
