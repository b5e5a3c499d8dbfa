"""
Domain package for rowstore.

Exports the row schema and the value objects shared by the gateway, the
search service and the ingestion pipeline. Keep this package focused on data
definitions and validation concerns.
"""

from rowstore.domain.models import (
    RECORD_COLUMNS,
    SUMMARY_COLUMNS,
    BatchOutcome,
    Detail,
    IngestReport,
    Page,
    QueryResult,
    Record,
    RecordSummary,
    WaveProgress,
)

__all__ = [
    "RECORD_COLUMNS",
    "SUMMARY_COLUMNS",
    "BatchOutcome",
    "Detail",
    "IngestReport",
    "Page",
    "QueryResult",
    "Record",
    "RecordSummary",
    "WaveProgress",
]
