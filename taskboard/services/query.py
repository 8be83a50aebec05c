# services/query.py

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from taskboard.errors import ValidationError


@dataclass
class ListQuery:
    where: Dict[str, Any] = field(default_factory=dict)
    sort: Optional[Dict[str, int]] = None
    select: Optional[Dict[str, int]] = None
    skip: int = 0
    limit: Optional[int] = None
    count: bool = False


def _parse_json(value: Optional[str]) -> Optional[dict]:
    if value is None or value == "":
        return None
    try:
        parsed = json.loads(value)
    except ValueError:
        raise ValidationError("Invalid JSON for query param")
    if not isinstance(parsed, dict):
        raise ValidationError("Invalid JSON for query param")
    return parsed


def _parse_int(value: Optional[str], name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer")
    if n < 0:
        raise ValidationError(f"{name} must not be negative")
    return n


def parse_select(value: Optional[str]) -> Optional[Dict[str, int]]:
    return _parse_json(value)


def parse_list_query(params: Mapping[str, str], default_limit: Optional[int] = None) -> ListQuery:
    """
    Build a ListQuery from the `where`, `sort`, `select`, `skip`, `limit` and
    `count` request parameters. JSON-bearing parameters must decode to objects.
    A missing limit falls back to `default_limit` (None means unlimited).
    """
    limit = _parse_int(params.get("limit"), "limit")
    return ListQuery(
        where=_parse_json(params.get("where")) or {},
        sort=_parse_json(params.get("sort")),
        select=_parse_json(params.get("select")),
        skip=_parse_int(params.get("skip"), "skip") or 0,
        limit=default_limit if limit is None else limit,
        count=str(params.get("count", "")).lower() == "true",
    )
