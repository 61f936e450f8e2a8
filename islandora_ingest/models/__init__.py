"""
Domain models for the Islandora REST ingester.

Exports:
    - IngestionStatus: Enum for per-object ingestion state
    - ObjectState, ValueType: Object state and relationship value kind
    - ObjectSpec, RelationshipTriple, DatastreamSpec: Derived object data
    - IngestResult: Result tree for one object directory
    - BatchIngestionReport: Batch ingestion summary
    - IngestConfig, IngestContext, ConfigurationError: Run configuration
"""

from .status import IngestionStatus
from .objects import DatastreamSpec, ObjectSpec, ObjectState, RelationshipTriple, ValueType
from .result import BatchIngestionReport, IngestResult
from .config import ConfigurationError, IngestConfig, IngestContext

__all__ = [
    "IngestionStatus",
    "ObjectState",
    "ValueType",
    "ObjectSpec",
    "RelationshipTriple",
    "DatastreamSpec",
    "IngestResult",
    "BatchIngestionReport",
    "ConfigurationError",
    "IngestConfig",
    "IngestContext",
]
