"""Field lookup helpers shared by the provider normalizers.

Provider payloads are loosely shaped JSON. Every lookup goes through a dotted
path (``"legacy.screen_name"``) so alias chains read the same way in each
normalizer.

Two lookup flavours:
  - first_present(): first alias holding a non-empty value. Used for
    required identifiers and display strings.
  - first_not_none(): first alias that is set at all, so 0 and False are
    kept. Used for counts and flags.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any

TWITTER_DATE_FORMAT = "%a %b %d %H:%M:%S %z %Y"  # "Wed Oct 10 20:19:24 +0000 2018"


def dig(raw: Any, path: str) -> Any:
    """Walk a dotted path through nested dicts. Missing links yield None."""
    node = raw
    for part in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def _is_empty(value: Any) -> bool:
    return value is None or value is False or (isinstance(value, str) and not value.strip())


def first_present(raw: Any, *paths: str) -> Any:
    for path in paths:
        value = dig(raw, path)
        if not _is_empty(value):
            return value
    return None


def first_not_none(raw: Any, *paths: str) -> Any:
    for path in paths:
        value = dig(raw, path)
        if value is not None:
            return value
    return None


def as_text(value: Any) -> str | None:
    """Stringify an identifier or display value; None stays None."""
    if _is_empty(value):
        return None
    return str(value)


def as_int(value: Any) -> int | None:
    """Coerce a count. Unparseable values decode as absent rather than 0."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def round_half_up(value: float) -> int:
    """Round halves toward +inf (2.5 → 3, -2.5 → -2), as scores are rounded upstream."""
    return math.floor(value + 0.5)


def as_bool(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def to_iso(value: Any) -> str | None:
    """Normalize a provider timestamp to ISO-8601 UTC.

    Accepts ISO strings, Twitter's classic ``created_at`` format and epoch
    milliseconds. Anything unparseable is returned as the original string.
    """
    if _is_empty(value):
        return None

    parsed: datetime | None = None
    if isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            parsed = None
    else:
        text = str(value).strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = datetime.strptime(text, TWITTER_DATE_FORMAT)
            except ValueError:
                parsed = None

    if parsed is None:
        return str(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def extract_array_from_response(data: Any, *keys: str) -> list[Any]:
    """Find the item list inside a provider response.

    Order: the response itself if it is a list, then the first key holding a
    list, then the same search inside ``data`` and ``result`` wrappers.
    """
    if isinstance(data, list):
        return data

    if isinstance(data, dict):
        for key in keys:
            value = data.get(key)
            if isinstance(value, list):
                return value

        if isinstance(data.get("data"), dict):
            return extract_array_from_response(data["data"], *keys)
        if isinstance(data.get("result"), dict):
            return extract_array_from_response(data["result"], *keys)

    return []


def unwrap_payload(data: Any, *keys: str) -> Any:
    """Return the first non-empty wrapper value under ``keys``, else ``data``."""
    if isinstance(data, dict):
        for key in keys:
            value = data.get(key)
            if value:
                return value
    return data
