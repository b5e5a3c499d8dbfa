"""
Pagination and search service for rowstore.

Translates (search term, cursor, page size) into one keyset-paginated query
against the store. The cursor is the id of the last row of the previous page;
a page holds rows with `id > cursor` in ascending id order, so concurrent
inserts ahead of the cursor show up on later pages and never shift earlier
ones.

List queries select only the lightweight columns. Heavy fields (salary, bio)
are loaded one row at a time through `get_detail`.

One extra row is fetched past the page size to tell exactly whether another
page exists; `next_cursor` is only set when it does.
"""

from __future__ import annotations

import time
from typing import Any, AsyncIterator, List, Optional, Tuple

from rowstore.config import Settings, get_settings
from rowstore.domain.models import RECORD_COLUMNS, SUMMARY_COLUMNS, Detail, Page, Record, RecordSummary
from rowstore.errors import NotFoundError
from rowstore.infrastructure.gateway import QueryExecutor
from rowstore.infrastructure.schema import TABLE_NAME
from rowstore.utils.logging import get_logger

log = get_logger(__name__)

_LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return (
        term.replace(_LIKE_ESCAPE, _LIKE_ESCAPE * 2)
        .replace("%", _LIKE_ESCAPE + "%")
        .replace("_", _LIKE_ESCAPE + "_")
    )


def build_search_query(
    term: Optional[str],
    cursor: Optional[str],
    limit: int,
    case_sensitive: bool = False,
) -> Tuple[str, List[Any]]:
    """
    Build the list query for one page.

    Parameters
    ----------
    term : str, optional
        Substring matched against name OR email. Blank means no filter.
    cursor : str, optional
        Only ids strictly greater than this are returned.
    limit : int
        Row cap passed to LIMIT (the caller adds the look-ahead row).
    case_sensitive : bool
        `instr()` matching when True; `lower(col) LIKE lower(term)` otherwise.

    Returns
    -------
    tuple[str, list]
        SQL text and positional parameters.
    """
    clauses: List[str] = []
    params: List[Any] = []

    if term is not None and term.strip():
        if case_sensitive:
            clauses.append("(instr(name, ?) > 0 OR instr(email, ?) > 0)")
            params.extend([term, term])
        else:
            # Fold in the engine on both sides; its lower() only maps ASCII.
            pattern = f"%{escape_like(term)}%"
            clauses.append(
                f"(lower(name) LIKE lower(?) ESCAPE '{_LIKE_ESCAPE}' "
                f"OR lower(email) LIKE lower(?) ESCAPE '{_LIKE_ESCAPE}')"
            )
            params.extend([pattern, pattern])

    if cursor:
        clauses.append("id > ?")
        params.append(cursor)

    sql = f"SELECT {', '.join(SUMMARY_COLUMNS)} FROM {TABLE_NAME}"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += " ORDER BY id ASC LIMIT ?"
    params.append(limit)
    return sql, params


def _elapsed_ms(start: float) -> int:
    return round((time.perf_counter() - start) * 1000)


class SearchService:
    """
    Cursor pagination and detail lookup over the `users` table.

    Stateless apart from the gateway it wraps; safe to share across
    concurrent requests.
    """

    def __init__(self, gateway: QueryExecutor, settings: Optional[Settings] = None) -> None:
        self._gateway = gateway
        self._settings = settings or get_settings()

    def _check_page_size(self, page_size: int) -> None:
        maximum = self._settings.max_page_size
        if page_size < 1 or page_size > maximum:
            raise ValueError(f"page_size must be between 1 and {maximum}, got {page_size}")

    async def search(
        self,
        term: Optional[str] = None,
        cursor: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> Page:
        """
        Fetch one page of record summaries.

        The page is terminal (`next_cursor is None`) whenever no further row
        matches, including when it holds fewer rows than `page_size`.
        """
        page_size = page_size if page_size is not None else self._settings.default_page_size
        self._check_page_size(page_size)

        sql, params = build_search_query(
            term,
            cursor,
            page_size + 1,
            case_sensitive=self._settings.search_case_sensitive,
        )
        start = time.perf_counter()
        result = await self._gateway.execute(sql, params)
        latency_ms = _elapsed_ms(start)

        has_more = len(result.rows) > page_size
        rows = [RecordSummary.model_validate(row) for row in result.rows[:page_size]]
        next_cursor = rows[-1].id if has_more else None

        log.debug(
            "Search page served",
            extra={
                "term": term,
                "cursor": cursor,
                "page_size": page_size,
                "count": len(rows),
                "has_more": has_more,
                "latency_ms": latency_ms,
            },
        )
        return Page(rows=rows, next_cursor=next_cursor, has_more=has_more, latency_ms=latency_ms)

    async def get_detail(self, record_id: str) -> Detail:
        """
        Fetch every column, heavy fields included, for one id.

        Raises
        ------
        NotFoundError
            If no row has this id.
        """
        sql = f"SELECT {', '.join(RECORD_COLUMNS)} FROM {TABLE_NAME} WHERE id = ?"
        start = time.perf_counter()
        result = await self._gateway.execute(sql, [record_id])
        latency_ms = _elapsed_ms(start)

        if not result.rows:
            raise NotFoundError(record_id)
        return Detail(record=Record.model_validate(result.rows[0]), latency_ms=latency_ms)

    async def iter_pages(
        self, term: Optional[str] = None, page_size: Optional[int] = None
    ) -> AsyncIterator[Page]:
        """Walk every page for `term`, following cursors until the last one."""
        cursor: Optional[str] = None
        while True:
            page = await self.search(term=term, cursor=cursor, page_size=page_size)
            yield page
            if page.next_cursor is None:
                return
            cursor = page.next_cursor


__all__ = ["SearchService", "build_search_query", "escape_like"]
