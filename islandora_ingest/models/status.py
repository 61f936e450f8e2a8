"""Ingestion status enumeration."""

from enum import Enum


class IngestionStatus(Enum):
    """Progress of one object directory through the ingest sequence."""

    PENDING = "pending"
    CREATED = "created"
    RELATIONSHIPS_SET = "relationships_set"
    DATASTREAMS_INGESTED = "datastreams_ingested"
    CHILDREN_INGESTED = "children_ingested"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"

    def __str__(self) -> str:
        """Return the string value of the status."""
        return self.value

