"""
Repository object domain models.

Contains:
    - ObjectState: Fedora object state
    - ObjectSpec: Identity and properties of an object to create
    - RelationshipTriple: One RELS-EXT statement about an object
    - DatastreamSpec: One content file destined for a datastream
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ObjectState(Enum):
    """Fedora object state."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DELETED = "Deleted"

    @property
    def code(self) -> str:
        """Single-letter form the REST API expects (A, I or D)."""
        return self.value[0]

    @classmethod
    def parse(cls, value: "str | ObjectState") -> "ObjectState":
        """
        Accept either the full state name or its one-letter code.

        Raises:
            ValueError: If value names no known state
        """
        if isinstance(value, cls):
            return value
        for state in cls:
            if value.lower() in (state.value.lower(), state.code.lower()):
                return state
        raise ValueError(f"Unknown object state: {value}")


class ValueType(Enum):
    """Kind of value a relationship points at."""

    URI = "uri"
    LITERAL = "literal"

    @property
    def rest_type(self) -> str:
        # islandora_rest takes "none" for plain literals
        return "uri" if self is ValueType.URI else "none"


@dataclass(frozen=True)
class ObjectSpec:
    """
    Everything needed to create one repository object.

    Attributes:
        pid: Explicit PID, or None when the server assigns one
        namespace: Namespace for server-assigned PIDs
        label: Object label (usually the MODS title)
        content_model: Content model PID
        owner: Object owner
        state: Object state
    """

    pid: str | None
    namespace: str | None
    label: str
    content_model: str
    owner: str
    state: ObjectState = ObjectState.ACTIVE

    def __post_init__(self):
        if self.pid is None and not self.namespace:
            raise ValueError("ObjectSpec needs either a pid or a namespace")
        if not self.label:
            raise ValueError("ObjectSpec label cannot be empty")


@dataclass(frozen=True)
class RelationshipTriple:
    """
    Subject-predicate-object statement sent to the relationship endpoint.

    Attributes:
        subject_pid: PID the relationship is attached to
        predicate: Predicate local name (e.g. "hasModel")
        object: Target PID or literal value
        namespace_uri: Predicate namespace URI
        value_type: Whether object is a URI or a literal
    """

    subject_pid: str
    predicate: str
    object: str
    namespace_uri: str
    value_type: ValueType = ValueType.URI

    def to_params(self) -> dict[str, str]:
        """
        Convert to islandora_rest relationship form parameters.

        Returns:
            Dictionary of form fields
        """
        return {
            "uri": self.namespace_uri,
            "predicate": self.predicate,
            "object": self.object,
            "type": self.value_type.rest_type,
        }


@dataclass(frozen=True)
class DatastreamSpec:
    """
    A content file to upload as a datastream.

    Attributes:
        dsid: Datastream identifier
        source_path: File on local storage
        mime_type: MIME type sent with the upload
        size_bytes: File size
        checksum: Hex digest, or None when checksums are disabled
        checksum_type: Algorithm name the checksum was computed with
    """

    dsid: str
    source_path: Path
    mime_type: str
    size_bytes: int
    checksum: str | None = None
    checksum_type: str | None = None

    @property
    def label(self) -> str:
        return self.source_path.name
