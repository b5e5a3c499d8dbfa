"""
Domain models for rowstore.

Defines the `users` row schema (full and list-view shapes) plus the value
objects returned by the search service and the ingestion pipeline. Column
order in `RECORD_COLUMNS` matches the table definition in
`rowstore.infrastructure.schema`.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

RECORD_COLUMNS: Tuple[str, ...] = (
    "id",
    "name",
    "email",
    "role",
    "department",
    "status",
    "location",
    "salary",
    "bio",
)

SUMMARY_COLUMNS: Tuple[str, ...] = ("id", "name", "email", "role")


class Record(BaseModel):
    """
    Representation of a single row in the `users` table.

    `salary` and `bio` are the heavy fields: always present on detail reads,
    never selected by list queries.
    """

    id: str = Field(..., min_length=1, description="Primary key; also the pagination cursor.")
    name: Optional[str] = Field(None, description="Display name.")
    email: Optional[str] = Field(None, description="Contact email.")
    role: Optional[str] = Field(None, description="Job role.")
    department: Optional[str] = Field(None, description="Department label.")
    status: Optional[str] = Field(None, description="Employment status.")
    location: Optional[str] = Field(None, description="Office location.")
    salary: Optional[int] = Field(None, description="Annual salary.")
    bio: Optional[str] = Field(None, description="Free-text biography.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "extra": "ignore",
    }

    def as_params(self) -> Tuple[Any, ...]:
        """Positional values in `RECORD_COLUMNS` order."""
        return tuple(getattr(self, column) for column in RECORD_COLUMNS)


class RecordSummary(BaseModel):
    """List-view projection of a record."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None

    model_config = {"frozen": True, "extra": "ignore"}


class QueryResult(BaseModel):
    """Rows returned by the store, each keyed by column name."""

    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class Page(BaseModel):
    rows: List[RecordSummary]
    next_cursor: Optional[str] = None
    has_more: bool = False
    latency_ms: int = 0

    @property
    def count(self) -> int:
        return len(self.rows)


class Detail(BaseModel):
    record: Record
    latency_ms: int = 0


class BatchOutcome(BaseModel):
    """Result of uploading one batch, after retries."""

    offset: int
    size: int
    attempts: int
    succeeded: bool
    error: Optional[str] = None

    @property
    def retries(self) -> int:
        return max(self.attempts - 1, 0)


class WaveProgress(BaseModel):
    """Cumulative progress snapshot emitted after each wave settles."""

    wave: int
    total_waves: int
    processed_rows: int
    total_rows: int
    elapsed_seconds: float
    rows_per_sec: float

    @property
    def percent(self) -> float:
        if self.total_rows == 0:
            return 100.0
        return round(self.processed_rows / self.total_rows * 100, 2)


class IngestReport(BaseModel):
    total_rows: int = 0
    committed_rows: int = 0
    failed_rows: int = 0
    duration_seconds: float = 0.0
    throughput_rows_per_sec: float = 0.0
    peak_rss_bytes: Optional[int] = None
    cpu_percent: Optional[float] = None
    outcomes: List[BatchOutcome] = Field(default_factory=list)

    @property
    def batches(self) -> int:
        return len(self.outcomes)

    @property
    def failed_batches(self) -> List[BatchOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def retried_batches(self) -> List[BatchOutcome]:
        return [o for o in self.outcomes if o.retries > 0]


__all__ = [
    "RECORD_COLUMNS",
    "SUMMARY_COLUMNS",
    "Record",
    "RecordSummary",
    "QueryResult",
    "Page",
    "Detail",
    "BatchOutcome",
    "WaveProgress",
    "IngestReport",
]
