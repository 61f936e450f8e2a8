"""
Batch driver for the Islandora REST ingester.

Coordinates:
    - Object directory discovery (folder scanning)
    - Repository checks that must pass before anything is ingested
    - Sequential per-directory ingestion with failure isolation
    - Post-ingest plugins and optional input cleanup
"""

import shutil
import time
from datetime import UTC, datetime
from pathlib import Path

from islandora_ingest.ingestion.identity import MODS_FILENAME, resolve_content_model
from islandora_ingest.ingestion.ingesters import Ingester, import_string
from islandora_ingest.models import (
    BatchIngestionReport,
    ConfigurationError,
    IngestContext,
    IngestionStatus,
    IngestResult,
)
from islandora_ingest.utils.logger import log_object_status
from islandora_ingest.utils.validators import ValidationError, validate_folder_path


def discover_object_dirs(input_dir: Path) -> list[Path]:
    """
    Find the object directories to ingest.

    Supports two modes:
    1. Batch: input_dir holds one subdirectory per object
    2. Single object: input_dir itself holds a MODS.xml

    Expected structure (batch):
        input_dir/
            ├── object1/
            │   ├── MODS.xml
            │   ├── cmodel.txt      (optional)
            │   └── OBJ.tif
            ├── book1/
            │   ├── MODS.xml
            │   ├── 001/
            │   └── 002/
            └── ...

    Args:
        input_dir: Path to the input directory

    Returns:
        Object directories, sorted by name

    Raises:
        ValidationError: If input_dir is missing or unreadable
    """
    input_dir = Path(input_dir)
    is_valid, error = validate_folder_path(input_dir)
    if not is_valid:
        raise ValidationError(error)

    if (input_dir / MODS_FILENAME).is_file():
        return [input_dir]

    return sorted(
        p for p in input_dir.iterdir() if p.is_dir() and not p.name.startswith(".")
    )


def check_repository(context: IngestContext) -> None:
    """
    Confirm the endpoint answers and the parent object is accessible.

    Raises:
        ConfigurationError: If either check fails
    """
    config = context.config
    if not context.client.ping():
        raise ConfigurationError(f"REST endpoint {config.endpoint} is not reachable")

    status_code = context.client.get_object(config.parent)
    if status_code != 200:
        raise ConfigurationError(
            f"Parent object {config.parent} is not accessible "
            f"(status {status_code})"
        )
    context.logger.debug(f"Parent object {config.parent} found")


def load_plugins(dotted_paths: list[str]) -> list:
    """
    Import post-ingest plugins.

    Raises:
        ConfigurationError: If any plugin cannot be imported or is not callable
    """
    plugins = []
    for dotted_path in dotted_paths:
        plugin = import_string(dotted_path)
        if not callable(plugin):
            raise ConfigurationError(f"Plugin {dotted_path} is not callable")
        plugins.append(plugin)
    return plugins


def _select_ingester(context: IngestContext, directory: Path) -> Ingester | None:
    content_model = resolve_content_model(context, directory)
    if content_model is None:
        context.logger.warning(
            f"Cannot determine a content model for {directory}, skipping."
        )
        return None
    try:
        return context.registry.create(context, content_model)
    except ConfigurationError as e:
        context.logger.warning(f"{e} Skipping {directory}.")
        return None


def _run_plugins(context: IngestContext, directory: Path, result: IngestResult) -> None:
    for plugin in context.plugins:
        name = getattr(plugin, "__name__", repr(plugin))
        try:
            plugin(context, directory, result)
        except Exception as e:
            context.logger.error(
                f"Plugin {name} failed for {directory}: {e}", exc_info=True
            )
            context.had_errors = True


def _delete_input(context: IngestContext, directory: Path) -> None:
    try:
        shutil.rmtree(directory)
        context.logger.info(f"Deleted input directory {directory}")
    except OSError as e:
        context.warning(f"Could not delete input directory {directory}: {e}")


def ingest_directory(
    context: IngestContext,
    directory: Path,
    ingester: Ingester | None = None,
) -> IngestResult:
    """
    Ingest one top-level directory, never raising.

    Args:
        context: Run context
        directory: Object directory
        ingester: Ingester to use; None picks one from the directory's
            own content model

    Returns:
        IngestResult for the directory
    """
    start_time = time.time()

    try:
        if ingester is None:
            ingester = _select_ingester(context, directory)
            if ingester is None:
                return IngestResult.skipped(directory, "Unrecognized content model")

        result = ingester.package_object(directory)

    except Exception as e:
        context.logger.error(
            f"[X] Unexpected error processing {directory}: {e}", exc_info=True
        )
        context.had_errors = True
        return IngestResult(
            directory=directory,
            status=IngestionStatus.FAILED,
            error_message=f"Unexpected error: {e}",
            duration_seconds=time.time() - start_time,
        )

    if result.is_success():
        _run_plugins(context, directory, result)
        if context.config.delete_input:
            _delete_input(context, directory)

    return result


def ingest_batch(
    context: IngestContext,
    object_dirs: list[Path],
    ingester: Ingester | None = None,
) -> BatchIngestionReport:
    """
    Ingest object directories one at a time.

    Processes each directory independently - one failure doesn't stop the
    batch. Each directory, its children and its datastreams are finished
    before the next directory starts.

    Args:
        context: Run context
        object_dirs: Directories to ingest, in order
        ingester: Ingester for every directory; None dispatches per
            directory by content model

    Returns:
        BatchIngestionReport with summary and per-directory results
    """
    start_timestamp = datetime.now(UTC)
    context.logger.info(f"Starting batch ingestion: {len(object_dirs)} directories")

    results = []

    for i, directory in enumerate(object_dirs, start=1):
        context.logger.info(f"[{i}/{len(object_dirs)}] Processing: {directory}")

        result = ingest_directory(context, directory, ingester)
        results.append(result)
        log_object_status(context.logger, result)

        if result.is_success():
            context.logger.info(
                f"  [OK] {result.pid}: {len(result.datastreams_uploaded)} datastreams, "
                f"{len(result.successful_children)} children, "
                f"{result.duration_seconds:.2f}s"
            )
        elif result.is_skipped():
            context.logger.info(f"  [>>] Skipped: {result.skipped_reason}")
        else:
            context.logger.error(f"  [X] Failed: {result.error_message}")

    end_timestamp = datetime.now(UTC)

    report = BatchIngestionReport(
        results=results,
        start_timestamp=start_timestamp,
        end_timestamp=end_timestamp,
        had_errors=context.had_errors,
    )

    context.logger.info("Batch ingestion complete")
    context.logger.info(f"  Total: {report.total_objects}")
    context.logger.info(f"  [OK] Ingested: {report.successful}")
    context.logger.info(f"  [>>] Skipped: {report.skipped}")
    context.logger.info(f"  [X] Failed: {report.failed}")
    context.logger.info(f"  Duration: {report.total_duration_seconds:.2f}s")

    if report.had_errors:
        context.logger.warning(
            f"There were errors during ingest; see {context.config.log}"
        )

    return report
