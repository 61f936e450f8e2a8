"""
Datastream discovery and upload.

For each content file in an object directory:
    - Derive the DSID from the file name
    - Determine MIME type and checksum
    - Enforce the size ceiling
    - Upload, skipping (not aborting) on failure
"""

import dataclasses
import hashlib
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path

from islandora_ingest.ingestion.identity import CMODEL_FILENAME, MODS_FILENAME
from islandora_ingest.ingestion.rest_client import RepositoryError
from islandora_ingest.models import DatastreamSpec, IngestContext
from islandora_ingest.models.config import CHECKSUM_ALGORITHMS
from islandora_ingest.utils.validators import is_dsid

PRIMARY_DSID = "OBJ"
MODS_DSID = "MODS"
THUMBNAIL_DSID = "TN"

DEFAULT_MIME_TYPE = "application/octet-stream"

# mimetypes does not know these on every platform
MIME_OVERRIDES = {
    ".jp2": "image/jp2",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".xml": "application/xml",
    ".hocr": "text/html",
}

HASH_CHUNK_SIZE = 1024 * 1024


@dataclass
class DatastreamReport:
    """DSIDs uploaded and skipped for one object."""

    uploaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def dsid_for_file(path: Path) -> str:
    """
    Derive the datastream ID for a content file.

    MODS.xml is the MODS datastream, OBJ.tif is OBJ, TN.jpg is TN.
    Anything not named after a DSID is the primary content (OBJ).
    """
    if path.name == MODS_FILENAME:
        return MODS_DSID
    if is_dsid(path.stem):
        return path.stem
    return PRIMARY_DSID


def mime_type_for_file(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix in MIME_OVERRIDES:
        return MIME_OVERRIDES[suffix]
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or DEFAULT_MIME_TYPE


def compute_checksum(path: Path, checksum_type: str) -> str:
    """
    Hex digest of a file in a Fedora checksum algorithm.

    Args:
        path: File to hash
        checksum_type: Fedora algorithm name (SHA-1, MD5, SHA-256, ...)

    Raises:
        ValueError: If the algorithm is not supported
    """
    try:
        algorithm = CHECKSUM_ALGORITHMS[checksum_type]
    except KeyError:
        raise ValueError(f"Unsupported checksum type: {checksum_type}") from None

    digest = hashlib.new(algorithm)
    with path.open("rb") as f:
        for block in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()


def build_datastream_spec(path: Path, dsid: str | None = None) -> DatastreamSpec:
    """Describe one file as a datastream, without hashing it yet."""
    return DatastreamSpec(
        dsid=dsid or dsid_for_file(path),
        source_path=path,
        mime_type=mime_type_for_file(path),
        size_bytes=path.stat().st_size,
    )


def discover_datastreams(context: IngestContext, directory: Path) -> list[DatastreamSpec]:
    """
    List the datastreams held directly in an object directory.

    cmodel.txt, hidden files and subdirectories are not datastreams. When
    two files map to the same DSID the first (by name) wins.

    Args:
        context: Run context
        directory: Object directory

    Returns:
        DatastreamSpecs sorted by file name
    """
    specs = []
    seen = {}

    for path in sorted(Path(directory).iterdir()):
        if not path.is_file() or path.name.startswith(".") or path.name == CMODEL_FILENAME:
            continue

        spec = build_datastream_spec(path)
        if spec.dsid in seen:
            context.warning(
                f"{path} maps to datastream {spec.dsid}, already taken by "
                f"{seen[spec.dsid].name}; skipping it"
            )
            continue

        seen[spec.dsid] = path
        specs.append(spec)

    return specs


def _within_size_limit(context: IngestContext, spec: DatastreamSpec) -> bool:
    limit = context.config.max_file_size_bytes
    if limit is not None and spec.size_bytes > limit:
        context.warning(
            f"{spec.source_path} is {spec.size_bytes} bytes, over the "
            f"{context.config.max_file_size} MB limit; datastream {spec.dsid} skipped"
        )
        return False
    return True


def _with_checksum(context: IngestContext, spec: DatastreamSpec) -> DatastreamSpec:
    if not context.config.checksums_enabled:
        return spec
    checksum_type = context.config.checksum_type
    return dataclasses.replace(
        spec,
        checksum=compute_checksum(spec.source_path, checksum_type),
        checksum_type=checksum_type,
    )


def upload(
    context: IngestContext, pid: str, spec: DatastreamSpec, replace: bool = False
) -> bool:
    """
    Upload one datastream, enforcing the size limit.

    Returns:
        True if uploaded, False if skipped or rejected
    """
    if not _within_size_limit(context, spec):
        return False

    try:
        spec = _with_checksum(context, spec)
        context.client.upload_datastream(pid, spec, replace=replace)
    except (RepositoryError, OSError) as e:
        context.warning(f"Datastream {spec.dsid} for {pid} not ingested: {e}")
        return False

    context.logger.debug(f"Datastream {spec.dsid} ingested into {pid}")
    return True


def ingest_datastreams(
    context: IngestContext, pid: str, directory: Path
) -> DatastreamReport:
    """
    Upload every datastream found directly in a directory.

    One oversized or rejected file never aborts the others.

    Args:
        context: Run context
        pid: Object the datastreams belong to
        directory: Object directory

    Returns:
        DatastreamReport listing uploaded and skipped DSIDs
    """
    report = DatastreamReport()
    for spec in discover_datastreams(context, directory):
        if upload(context, pid, spec):
            report.uploaded.append(spec.dsid)
        else:
            report.skipped.append(spec.dsid)
    return report


def replace_datastream(
    context: IngestContext, pid: str, dsid: str, path: Path
) -> bool:
    """
    Replace a datastream with externally supplied content.

    Used to back-fill a composite object's thumbnail from a child.
    """
    spec = build_datastream_spec(Path(path), dsid=dsid)
    if spec.mime_type == DEFAULT_MIME_TYPE and dsid == THUMBNAIL_DSID:
        # downloaded temp files carry no extension
        spec = dataclasses.replace(spec, mime_type="image/jpeg")
    return upload(context, pid, spec, replace=True)
