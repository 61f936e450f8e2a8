"""
Ingestion result models.

Contains:
    - IngestResult: Outcome of one object directory, with its children
    - BatchIngestionReport: Summary of a complete batch run
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from islandora_ingest.models.status import IngestionStatus


@dataclass
class IngestResult:
    """
    Represents the outcome of ingesting one object directory.

    Composite objects carry one child result per child directory, in the
    order the children were processed.

    Attributes:
        directory: Input directory of the object
        status: Current or final ingestion state
        pid: PID of the created object (None if never created)
        kind: Name of the ingester that handled the directory
        child_results: Results of child objects (pages, constituents)
        datastreams_uploaded: DSIDs uploaded successfully
        datastreams_skipped: DSIDs skipped (oversized, duplicate, failed)
        error_message: Error details (if status is failed)
        skipped_reason: Reason for skipping (if status is skipped)
        duration_seconds: Time taken for this object and its children
    """

    directory: Path
    status: IngestionStatus = IngestionStatus.PENDING
    pid: str | None = None
    kind: str | None = None
    child_results: list["IngestResult"] = field(default_factory=list)
    datastreams_uploaded: list[str] = field(default_factory=list)
    datastreams_skipped: list[str] = field(default_factory=list)
    error_message: str | None = None
    skipped_reason: str | None = None
    duration_seconds: float = 0.0

    def is_success(self) -> bool:
        """Check if ingestion completed."""
        return self.status == IngestionStatus.DONE

    def is_error(self) -> bool:
        """Check if ingestion failed."""
        return self.status == IngestionStatus.FAILED

    def is_skipped(self) -> bool:
        """Check if the directory was skipped."""
        return self.status == IngestionStatus.SKIPPED

    @property
    def failed_children(self) -> list["IngestResult"]:
        """Failed descendants at any depth."""
        failed = []
        for child in self.child_results:
            if child.is_error():
                failed.append(child)
            failed.extend(child.failed_children)
        return failed

    @property
    def successful_children(self) -> list["IngestResult"]:
        return [child for child in self.child_results if child.is_success()]

    @classmethod
    def skipped(cls, directory: Path, reason: str, kind: str | None = None) -> "IngestResult":
        return cls(
            directory=directory,
            status=IngestionStatus.SKIPPED,
            kind=kind,
            skipped_reason=reason,
        )

    def to_dict(self) -> dict:
        """
        Convert to dictionary for logging.

        Returns:
            Dictionary representation of result, children included
        """
        result = {
            "directory": str(self.directory),
            "status": self.status.value,
            "pid": self.pid,
            "duration_seconds": round(self.duration_seconds, 2),
        }

        if self.kind:
            result["kind"] = self.kind

        if self.datastreams_uploaded:
            result["datastreams_uploaded"] = list(self.datastreams_uploaded)

        if self.datastreams_skipped:
            result["datastreams_skipped"] = list(self.datastreams_skipped)

        if self.error_message:
            result["error_message"] = self.error_message

        if self.skipped_reason:
            result["skipped_reason"] = self.skipped_reason

        if self.child_results:
            result["children"] = [child.to_dict() for child in self.child_results]

        return result


@dataclass
class BatchIngestionReport:
    """
    Represents the summary of a complete ingestion batch.

    Attributes:
        results: Per-directory results for top-level objects
        start_timestamp: Batch start time
        end_timestamp: Batch end time
        had_errors: Whether any error was logged during the run
    """

    results: list[IngestResult]
    start_timestamp: datetime
    end_timestamp: datetime
    had_errors: bool = False

    @property
    def total_objects(self) -> int:
        """Total number of top-level directories processed."""
        return len(self.results)

    @property
    def successful(self) -> int:
        """Number of top-level objects ingested."""
        return sum(1 for r in self.results if r.is_success())

    @property
    def skipped(self) -> int:
        """Number of directories skipped."""
        return sum(1 for r in self.results if r.is_skipped())

    @property
    def failed(self) -> int:
        """Number of top-level objects that could not be created."""
        return sum(1 for r in self.results if r.is_error())

    @property
    def failed_children(self) -> list[IngestResult]:
        """Failed child objects of otherwise successful composites."""
        failed = []
        for result in self.results:
            failed.extend(result.failed_children)
        return failed

    @property
    def total_children(self) -> int:
        return sum(len(r.child_results) for r in self.results)

    @property
    def total_duration_seconds(self) -> float:
        """Total processing time for entire batch."""
        return (self.end_timestamp - self.start_timestamp).total_seconds()

    def success_rate(self) -> float:
        """
        Calculate success rate as percentage of non-skipped directories.

        Returns:
            Success rate (0-100)
        """
        attempted = self.successful + self.failed
        if attempted == 0:
            return 0.0
        return (self.successful / attempted) * 100

    def summary(self) -> str:
        """
        Generate human-readable summary.

        Returns:
            Formatted summary string
        """
        lines = [
            os.linesep,
            "=" * 60,
            "Ingestion Batch Summary",
            "=" * 60,
            f"Total Directories: {self.total_objects}",
            f"  [OK] Ingested: {self.successful}",
            f"  [>>] Skipped: {self.skipped}",
            f"  [X] Failed: {self.failed}",
            "",
            f"Child Objects: {self.total_children}",
            f"  [X] Failed Children: {len(self.failed_children)}",
            f"Total Duration: {self.total_duration_seconds:.2f} seconds",
            f"Success Rate: {self.success_rate():.1f}%",
        ]

        if self.failed > 0:
            lines.append("[X] Failed Objects:")
            for result in self.results:
                if result.is_error():
                    lines.append(f"  - {result.directory}: {result.error_message}")

        failed_children = self.failed_children
        if failed_children:
            lines.append("[X] Failed Children:")
            for child in failed_children[:10]:
                lines.append(f"  - {child.directory}: {child.error_message}")
            if len(failed_children) > 10:
                lines.append(f"  ... and {len(failed_children) - 10} more")

        lines.append("=" * 60)
        return os.linesep.join(lines)
