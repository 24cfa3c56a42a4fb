"""Thin wrapper over the Supabase (PostgREST) query builder.

Every read goes through :func:`read_table` so that row caps, truncation
warnings and error wrapping behave the same for all tables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from supabase import Client, create_client

from bizdash.config import Settings, get_settings
from bizdash.errors import BackendError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


@dataclass
class ReadResult:
    table: str
    rows: List[Row] = field(default_factory=list)
    limit: Optional[int] = None

    @property
    def truncated(self) -> bool:
        return self.limit is not None and len(self.rows) >= self.limit


def get_client(settings: Optional[Settings] = None) -> Client:
    settings = settings or get_settings()
    if not settings.project_url or not settings.project_anon_key:
        raise BackendError("Backend connection is not configured (PROJECT_URL / PROJECT_ANON_KEY).")
    return create_client(settings.project_url, settings.project_anon_key)


def _apply_filters(
    query: Any,
    *,
    eq: Optional[Mapping[str, Any]] = None,
    in_: Optional[Mapping[str, Iterable[Any]]] = None,
    gte: Optional[Mapping[str, Any]] = None,
    lte: Optional[Mapping[str, Any]] = None,
    lt: Optional[Mapping[str, Any]] = None,
) -> Any:
    for col, value in (eq or {}).items():
        query = query.eq(col, value)
    for col, values in (in_ or {}).items():
        query = query.in_(col, list(values))
    # Range bounds of None are skipped so open-ended ranges need no special casing.
    for col, value in (gte or {}).items():
        if value is not None:
            query = query.gte(col, value)
    for col, value in (lte or {}).items():
        if value is not None:
            query = query.lte(col, value)
    for col, value in (lt or {}).items():
        if value is not None:
            query = query.lt(col, value)
    return query


def read_table(
    client: Client,
    table: str,
    columns: str = "*",
    *,
    eq: Optional[Mapping[str, Any]] = None,
    in_: Optional[Mapping[str, Iterable[Any]]] = None,
    gte: Optional[Mapping[str, Any]] = None,
    lte: Optional[Mapping[str, Any]] = None,
    lt: Optional[Mapping[str, Any]] = None,
    order: Optional[Sequence[Tuple[str, bool]]] = None,
    limit: Optional[int] = None,
) -> ReadResult:
    try:
        query = client.table(table).select(columns)
        query = _apply_filters(query, eq=eq, in_=in_, gte=gte, lte=lte, lt=lt)
        for col, desc in order or []:
            query = query.order(col, desc=desc)
        if limit is not None:
            query = query.limit(limit)
        response = query.execute()
    except Exception as exc:
        raise BackendError(f"Failed to read {table}: {exc}", table=table) from exc

    result = ReadResult(table=table, rows=list(response.data or []), limit=limit)
    if result.truncated:
        logger.warning("Read of %s hit the %s row cap; results may be truncated", table, limit)
    return result


def read_page(
    client: Client,
    table: str,
    columns: str = "*",
    *,
    order: Optional[Sequence[Tuple[str, bool]]] = None,
    start: int = 0,
    end: int = 9,
) -> Tuple[List[Row], int]:
    """Read rows ``start..end`` (inclusive) together with the exact total count."""
    try:
        query = client.table(table).select(columns, count="exact")
        for col, desc in order or []:
            query = query.order(col, desc=desc)
        response = query.range(start, end).execute()
    except Exception as exc:
        raise BackendError(f"Failed to read {table}: {exc}", table=table) from exc
    return list(response.data or []), int(response.count or 0)


def insert_row(client: Client, table: str, row: Row) -> Row:
    try:
        response = client.table(table).insert([row]).execute()
    except Exception as exc:
        raise BackendError(f"Failed to insert into {table}: {exc}", table=table) from exc
    data = list(response.data or [])
    return data[0] if data else dict(row)


def delete_rows(client: Client, table: str, *, eq: Mapping[str, Any]) -> None:
    if not eq:
        raise ValueError("delete_rows requires at least one equality filter")
    try:
        query = client.table(table).delete()
        for col, value in eq.items():
            query = query.eq(col, value)
        query.execute()
    except Exception as exc:
        raise BackendError(f"Failed to delete from {table}: {exc}", table=table) from exc
