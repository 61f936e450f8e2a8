"""
Validators for ingest input and repository identifiers.

Validates PIDs, namespaces, and input folder paths.
"""

import re
from pathlib import Path

# Fedora PID grammar
PID_MAX_LENGTH = 64
PID_PATTERN = re.compile(
    r"^([A-Za-z0-9]|-|\.)+:(([A-Za-z0-9])|-|\.|~|_|(%[0-9A-F]{2}))+$"
)
NAMESPACE_PATTERN = re.compile(r"^([A-Za-z0-9]|-|\.)+$")

# Datastream IDs recognized in file names (OBJ.tif, TN.jpg, HOCR.html).
# Any other file is primary content, whatever its case.
KNOWN_DSIDS = frozenset(
    {
        "OBJ",
        "MODS",
        "DC",
        "TN",
        "OCR",
        "HOCR",
        "JP2",
        "JPG",
        "MEDIUM_SIZE",
        "PDF",
        "FULL_TEXT",
        "TECHMD",
        "PREVIEW",
        "MP4",
        "MKV",
        "PROXY_MP3",
        "TRANSCRIPT",
    }
)


class ValidationError(Exception):
    """Raised when validation fails."""

    pass


def is_valid_pid(pid: str | None) -> bool:
    """
    Check a string against the Fedora PID grammar.

    A PID is valid if it is at most 64 characters and has the form
    namespace:identifier.

    Args:
        pid: Candidate PID

    Returns:
        True if pid is a valid PID

    Examples:
        >>> is_valid_pid("test:123")
        True
        >>> is_valid_pid("test:inv@lid")
        False
    """
    if not pid or len(pid) > PID_MAX_LENGTH:
        return False
    return PID_PATTERN.match(pid) is not None


def is_valid_namespace(namespace: str | None) -> bool:
    """Check a bare PID namespace (the part before the colon)."""
    if not namespace or len(namespace) >= PID_MAX_LENGTH:
        return False
    return NAMESPACE_PATTERN.match(namespace) is not None


def namespace_of(pid: str) -> str:
    """Return the namespace part of a PID."""
    return pid.split(":", 1)[0]


def is_dsid(name: str) -> bool:
    """Check whether a file stem names a known datastream."""
    return name in KNOWN_DSIDS


def validate_folder_path(folder_path: Path) -> tuple[bool, str | None]:
    """
    Validate that a folder path exists and is accessible.

    Args:
        folder_path: Path to validate

    Returns:
        Tuple of (is_valid, error_message)
        - is_valid: True if validation passed
        - error_message: Error description if validation failed, None otherwise
    """
    if not folder_path.exists():
        return False, f"Path does not exist: {folder_path}"

    if not folder_path.is_dir():
        return False, f"Path is not a directory: {folder_path}"

    try:
        list(folder_path.iterdir())
    except PermissionError:
        return False, f"Permission denied: cannot read directory {folder_path}"
    except OSError as e:
        return False, f"OS error accessing directory {folder_path}: {e}"

    return True, None
