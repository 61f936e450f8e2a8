"""
Identity and classification of object directories.

Derives, for one input directory:
    - The object label (MODS title)
    - The PID or the namespace the server should assign one in
    - The content model (explicit, cmodel.txt, or file extension)
"""

from pathlib import Path

from islandora_ingest.ingestion.metadata import title_from_mods
from islandora_ingest.models import IngestContext, ObjectSpec
from islandora_ingest.utils.validators import is_dsid, is_valid_pid

MODS_FILENAME = "MODS.xml"
CMODEL_FILENAME = "cmodel.txt"
METADATA_FILENAMES = {MODS_FILENAME, CMODEL_FILENAME}

EXTENSION_CONTENT_MODELS = {
    "jp2": "islandora:sp_large_image_cmodel",
    "tif": "islandora:sp_large_image_cmodel",
    "tiff": "islandora:sp_large_image_cmodel",
    "jpg": "islandora:sp_basic_image",
    "jpeg": "islandora:sp_basic_image",
    "png": "islandora:sp_basic_image",
    "gif": "islandora:sp_basic_image",
    "pdf": "islandora:sp_pdf",
    "mp3": "islandora:sp-audioCModel",
    "wav": "islandora:sp-audioCModel",
    "mp4": "islandora:sp_videoCModel",
    "m4v": "islandora:sp_videoCModel",
    "mov": "islandora:sp_videoCModel",
    "avi": "islandora:sp_videoCModel",
    "mkv": "islandora:sp_videoCModel",
}


def content_model_for_extension(extension: str) -> str | None:
    """
    Look up the content model for a file extension.

    Args:
        extension: Extension with or without the leading dot

    Returns:
        Content model PID, or None for unknown extensions
    """
    return EXTENSION_CONTENT_MODELS.get(extension.lower().lstrip("."))


def content_files(directory: Path) -> list[Path]:
    """Regular, non-hidden files in directory, MODS.xml and cmodel.txt excluded."""
    return sorted(
        p
        for p in directory.iterdir()
        if p.is_file()
        and not p.name.startswith(".")
        and p.name not in METADATA_FILENAMES
    )


def primary_content_file(directory: Path) -> Path | None:
    """
    Find the file that holds the object's main content.

    A sole content file is always primary. Otherwise a file named OBJ.*
    wins, then the first file whose stem is not a known datastream ID
    (TN.jpg, OCR.txt and the like are derivatives).
    """
    files = content_files(directory)
    if len(files) == 1:
        return files[0]
    for path in files:
        if path.stem == "OBJ":
            return path
    for path in files:
        if not is_dsid(path.stem):
            return path
    return None


def resolve_content_model(
    context: IngestContext,
    directory: Path,
    explicit: str | None = None,
) -> str | None:
    """
    Resolve a directory's content model. First match wins.

    Resolution order:
        1. explicit content model (leaf single-object ingests)
        2. cmodel.txt in the directory, if it holds a valid PID
        3. extension of the primary content file

    Args:
        context: Run context
        directory: Object directory
        explicit: Content model given on the command line

    Returns:
        Content model PID, or None if none could be determined
    """
    if explicit:
        return explicit

    cmodel_path = directory / CMODEL_FILENAME
    if cmodel_path.is_file():
        try:
            cmodel = cmodel_path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            context.logger.warning(f"Cannot read {cmodel_path}: {e}")
        else:
            if is_valid_pid(cmodel):
                return cmodel
            context.logger.warning(
                f"{cmodel_path} does not contain a valid content model PID: {cmodel!r}"
            )

    primary = primary_content_file(directory)
    if primary is not None:
        return content_model_for_extension(primary.suffix)

    return None


def resolve_pid(
    context: IngestContext,
    directory: Path,
    namespace: str | None = None,
    top_level: bool = True,
) -> tuple[str | None, str | None]:
    """
    Work out the PID, or the namespace to mint one in.

    Args:
        context: Run context
        directory: Object directory
        namespace: Namespace to fall back to when none is configured
            (children use their parent's namespace)
        top_level: Whether the directory is a top-level object; a full PID
            given as the namespace option applies to top-level objects only

    Returns:
        Tuple of (pid, namespace); pid is None when the server assigns it
    """
    config = context.config

    if config.namespace:
        if top_level and config.explicit_pid:
            return config.explicit_pid, config.bare_namespace
        return None, config.bare_namespace

    if is_valid_pid(directory.name):
        return directory.name, directory.name.split(":", 1)[0]

    return None, namespace


def classify(
    context: IngestContext,
    directory: Path,
    *,
    content_model: str | None = None,
    label: str | None = None,
    namespace: str | None = None,
    top_level: bool = True,
) -> ObjectSpec | None:
    """
    Derive the ObjectSpec for a directory, or None to skip it.

    Args:
        context: Run context
        directory: Object directory
        content_model: Explicit content model
        label: Explicit label; when None the MODS title is required
        namespace: Fallback namespace for server-assigned PIDs
        top_level: Whether the directory is a top-level object

    Returns:
        ObjectSpec, or None if the label, PID or content model
        cannot be determined (a warning is logged)
    """
    directory = Path(directory)
    mods_label = title_from_mods(directory / MODS_FILENAME)

    if label is None:
        label = mods_label
        if not label:
            context.logger.warning(f"{directory} appears to be empty, skipping.")
            return None
    elif mods_label:
        label = mods_label

    pid, pid_namespace = resolve_pid(context, directory, namespace, top_level)
    if pid is None and not pid_namespace:
        context.logger.warning(
            f"No PID for {directory}: directory name is not a PID "
            f"and no namespace was given, skipping."
        )
        return None

    cmodel = resolve_content_model(context, directory, content_model)
    if cmodel is None:
        context.logger.warning(
            f"Cannot determine a content model for {directory}, skipping."
        )
        return None

    return ObjectSpec(
        pid=pid,
        namespace=pid_namespace,
        label=label,
        content_model=cmodel,
        owner=context.config.owner,
        state=context.config.state,
    )
