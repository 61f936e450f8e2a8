"""
Object ingesters, one per package kind.

Every ingester runs the same sequence for a directory:
    classify → create object → content model and parent triples →
    datastreams → kind-specific children → done

Composite kinds (books, newspaper issues, compound objects) ingest each
child directory through a Single sub-ingester. A failed child is logged
and skipped; it never aborts its siblings or its parent.
"""

import importlib
import json
import time
from pathlib import Path

from islandora_ingest.ingestion.datastreams import (
    THUMBNAIL_DSID,
    ingest_datastreams,
    replace_datastream,
)
from islandora_ingest.ingestion.identity import MODS_FILENAME, classify
from islandora_ingest.ingestion.metadata import MODS_DATE_ISSUED_XPATH, extract
from islandora_ingest.ingestion.relationships import (
    child_sort_key,
    constituent_relationships,
    issue_relationships,
    object_relationships,
    page_relationships,
    sequence_from_dirname,
)
from islandora_ingest.ingestion.rest_client import RepositoryError
from islandora_ingest.models import (
    ConfigurationError,
    IngestContext,
    IngestionStatus,
    IngestResult,
    ObjectSpec,
    RelationshipTriple,
)
from islandora_ingest.utils.validators import namespace_of


class Ingester:
    """
    Base ingester: handles a single object with no children.

    Subclasses override ingest_children() and the relationship hooks.
    """

    kind = "single"
    default_content_model: str | None = None

    def __init__(self, context: IngestContext, content_model: str | None = None):
        """
        Args:
            context: Run context
            content_model: Content model for every object this ingester
                creates; None resolves it per directory
        """
        self.context = context
        self.content_model = content_model or self.default_content_model

    @property
    def client(self):
        return self.context.client

    def package_object(
        self,
        directory: Path,
        *,
        parent: str | None = None,
        predicate: str | None = None,
        label: str | None = None,
        namespace: str | None = None,
        top_level: bool = True,
    ) -> IngestResult:
        """
        Ingest one object directory and everything below it.

        Args:
            directory: Object directory
            parent: Parent PID (default: the configured parent)
            predicate: Membership predicate (default: the configured one)
            label: Explicit label instead of requiring a MODS title
            namespace: Namespace for server-assigned PIDs
            top_level: Whether directory is a top-level input directory

        Returns:
            IngestResult tree; SKIPPED if the directory cannot be
            classified, FAILED if the object cannot be created
        """
        start_time = time.time()
        directory = Path(directory)
        config = self.context.config

        spec = classify(
            self.context,
            directory,
            content_model=self.content_model,
            label=label,
            namespace=namespace,
            top_level=top_level,
        )
        if spec is None:
            return IngestResult.skipped(
                directory, "Missing label, PID or content model", kind=self.kind
            )

        result = IngestResult(directory=directory, kind=self.kind)

        try:
            result.pid = self.client.create_object(spec)
        except RepositoryError as e:
            result.status = IngestionStatus.FAILED
            result.error_message = str(e)
            result.duration_seconds = time.time() - start_time
            self.context.error(f"Object at {directory} not created: {e}")
            return result
        result.status = IngestionStatus.CREATED

        # Content model has to be in place before any datastream arrives,
        # otherwise derivatives are generated for the wrong model.
        triples = object_relationships(
            result.pid,
            spec.content_model,
            parent or config.parent,
            predicate or config.relationship,
        )
        triples.extend(self.object_relationships(result.pid, directory))
        self.set_relationships(triples)
        result.status = IngestionStatus.RELATIONSHIPS_SET

        report = ingest_datastreams(self.context, result.pid, directory)
        result.datastreams_uploaded.extend(report.uploaded)
        result.datastreams_skipped.extend(report.skipped)
        result.status = IngestionStatus.DATASTREAMS_INGESTED

        self.context.logger.info(f"Object {result.pid} ingested from {directory}")

        self.ingest_children(result, spec)

        result.status = IngestionStatus.DONE
        result.duration_seconds = time.time() - start_time
        return result

    def set_relationships(self, triples: list[RelationshipTriple]) -> bool:
        """
        Send triples in order. Failures are logged, not raised.

        Returns:
            True if every triple was accepted
        """
        all_set = True
        for triple in triples:
            try:
                self.client.set_relationship(triple)
            except RepositoryError as e:
                all_set = False
                self.context.warning(
                    f"Relationship {triple.predicate} -> {triple.object} "
                    f"not set on {triple.subject_pid}: {e}"
                )
        return all_set

    def object_relationships(self, pid: str, directory: Path) -> list[RelationshipTriple]:
        """Kind-specific triples sent right after the parent membership."""
        return []

    def ingest_children(self, result: IngestResult, spec: ObjectSpec) -> None:
        """Single objects have no children."""
        return None


class SingleIngester(Ingester):
    """Basic image, large image, PDF, audio, video and the like."""

    kind = "single"


class CompositeIngester(Ingester):
    """
    Base for objects that own an ordered set of child objects.

    Children are the immediate subdirectories, sorted by their trailing
    number. After the children, the composite's TN is replaced with the
    TN of its first successfully ingested child.
    """

    child_content_model: str | None = None
    child_predicate = "isMemberOf"
    child_noun = "Child"

    def child_directories(self, directory: Path) -> list[Path]:
        children = [
            p for p in directory.iterdir() if p.is_dir() and not p.name.startswith(".")
        ]
        return sorted(children, key=lambda p: child_sort_key(p.name))

    def child_label(self, child_dir: Path, sequence: str) -> str | None:
        return None

    def child_relationships(
        self, child_pid: str, parent_pid: str, sequence: str
    ) -> list[RelationshipTriple]:
        return []

    def ingest_children(self, result: IngestResult, spec: ObjectSpec) -> None:
        child_ingester = SingleIngester(self.context, self.child_content_model)
        namespace = namespace_of(result.pid)

        for position, child_dir in enumerate(
            self.child_directories(result.directory), start=1
        ):
            sequence = sequence_from_dirname(child_dir.name, position)
            try:
                child_result = child_ingester.package_object(
                    child_dir,
                    parent=result.pid,
                    predicate=self.child_predicate,
                    label=self.child_label(child_dir, sequence),
                    namespace=namespace,
                    top_level=False,
                )
            except Exception as e:
                self.context.logger.error(
                    f"[X] Unexpected error processing {child_dir}: {e}", exc_info=True
                )
                child_result = IngestResult(
                    directory=child_dir,
                    status=IngestionStatus.FAILED,
                    kind=child_ingester.kind,
                    error_message=f"Unexpected error: {e}",
                )
            result.child_results.append(child_result)

            if child_result.is_skipped():
                self.context.logger.warning(
                    f"{self.child_noun} directory {child_dir} skipped"
                )
                continue
            if child_result.is_error():
                self.context.error(
                    f"{self.child_noun} object at {child_dir} not ingested"
                )
                continue

            self.set_relationships(
                self.child_relationships(child_result.pid, result.pid, sequence)
            )

        result.status = IngestionStatus.CHILDREN_INGESTED
        self.backfill_thumbnail(result)

    def backfill_thumbnail(self, result: IngestResult) -> bool:
        """
        Give the composite the TN of its first successfully ingested child.

        Returns:
            True if the thumbnail was replaced
        """
        successful = result.successful_children
        if not successful:
            self.context.warning(
                f"TN for {result.pid} not replaced: no {self.child_noun.lower()} "
                f"was ingested"
            )
            return False

        first = successful[0]
        tn_path = self.client.download_datastream(first.pid, THUMBNAIL_DSID)
        if tn_path is None:
            self.context.warning(
                f"TN for {result.pid} not replaced with TN for {first.pid}"
            )
            return False

        try:
            replaced = replace_datastream(self.context, result.pid, THUMBNAIL_DSID, tn_path)
        finally:
            tn_path.unlink(missing_ok=True)

        if replaced:
            result.datastreams_uploaded.append(THUMBNAIL_DSID)
        return replaced


class BookIngester(CompositeIngester):
    """Book (islandora:bookCModel); each child directory is a page."""

    kind = "book"
    default_content_model = "islandora:bookCModel"
    child_content_model = "islandora:pageCModel"
    child_noun = "Page"

    def child_label(self, child_dir: Path, sequence: str) -> str | None:
        # A page MODS title, when present, still wins
        return f"Page {sequence}"

    def child_relationships(
        self, child_pid: str, parent_pid: str, sequence: str
    ) -> list[RelationshipTriple]:
        return page_relationships(child_pid, parent_pid, sequence)


class NewspaperIssueIngester(BookIngester):
    """Newspaper issue (islandora:newspaperIssueCModel) and its pages."""

    kind = "newspaper_issue"
    default_content_model = "islandora:newspaperIssueCModel"
    child_content_model = "islandora:newspaperPageCModel"

    def object_relationships(self, pid: str, directory: Path) -> list[RelationshipTriple]:
        date_issued = extract(directory / MODS_FILENAME, MODS_DATE_ISSUED_XPATH)
        return issue_relationships(pid, date_issued)


class CompoundIngester(CompositeIngester):
    """
    Compound object (islandora:compoundCModel).

    Each child is a full object with its own MODS.xml; its content model
    comes from its cmodel.txt or its file extension.
    """

    kind = "compound"
    default_content_model = "islandora:compoundCModel"
    child_predicate = "isConstituentOf"
    child_noun = "Constituent"

    def child_relationships(
        self, child_pid: str, parent_pid: str, sequence: str
    ) -> list[RelationshipTriple]:
        return constituent_relationships(child_pid, parent_pid, sequence)


SINGLE_CONTENT_MODELS = (
    "islandora:sp_basic_image",
    "islandora:sp_large_image_cmodel",
    "islandora:sp_pdf",
    "islandora:sp-audioCModel",
    "islandora:sp_videoCModel",
    "islandora:binaryObjectCModel",
)

STATIC_CLASSMAP: dict[str, type[Ingester]] = {
    **{cmodel: SingleIngester for cmodel in SINGLE_CONTENT_MODELS},
    BookIngester.default_content_model: BookIngester,
    NewspaperIssueIngester.default_content_model: NewspaperIssueIngester,
    CompoundIngester.default_content_model: CompoundIngester,
}

# Keywords accepted by earlier versions of the command line
KIND_KEYWORDS: dict[str, type[Ingester]] = {
    "single": SingleIngester,
    "books": BookIngester,
    "newspapers": NewspaperIssueIngester,
    "compound": CompoundIngester,
}


def import_string(dotted_path: str):
    """
    Import an attribute given as "package.module:attribute".

    Raises:
        ConfigurationError: If the module or attribute cannot be loaded
    """
    module_name, _, attribute = dotted_path.partition(":")
    if not module_name or not attribute:
        raise ConfigurationError(
            f"Expected 'module:attribute', got {dotted_path!r}"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import {module_name}: {e}") from e
    try:
        return getattr(module, attribute)
    except AttributeError:
        raise ConfigurationError(
            f"Module {module_name} has no attribute {attribute}"
        ) from None


class IngesterRegistry:
    """Lookup table from content model to ingester class."""

    def __init__(self, classmap: dict[str, type[Ingester]] | None = None):
        self.classmap = dict(STATIC_CLASSMAP if classmap is None else classmap)
        self._instances: dict[str, Ingester] = {}

    def register(self, content_model: str, ingester_class: type[Ingester]) -> None:
        if not (isinstance(ingester_class, type) and issubclass(ingester_class, Ingester)):
            raise ConfigurationError(
                f"{ingester_class!r} for {content_model} is not an Ingester subclass"
            )
        self.classmap[content_model] = ingester_class

    def load_classmap(self, path: Path) -> None:
        """
        Merge a JSON classmap file into the table.

        The file holds an object mapping content model PIDs to
        "module:Class" paths of Ingester subclasses.

        Raises:
            ConfigurationError: If the file or any class cannot be loaded
        """
        try:
            entries = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read classmap {path}: {e}") from e

        if not isinstance(entries, dict):
            raise ConfigurationError(f"Classmap {path} must be a JSON object")

        for content_model, dotted_path in entries.items():
            self.register(content_model, import_string(dotted_path))

    def lookup(self, content_model: str) -> type[Ingester] | None:
        if content_model in KIND_KEYWORDS:
            return KIND_KEYWORDS[content_model]
        return self.classmap.get(content_model)

    def create(self, context: IngestContext, content_model: str) -> Ingester:
        """
        Build (or reuse) the ingester for a content model.

        Raises:
            ConfigurationError: If the content model is not recognized
        """
        if content_model in self._instances:
            return self._instances[content_model]

        ingester_class = self.lookup(content_model)
        if ingester_class is None:
            raise ConfigurationError(
                f"Sorry, the content model {content_model} is not recognized."
            )

        explicit = None if content_model in KIND_KEYWORDS else content_model
        ingester = ingester_class(context, explicit)
        self._instances[content_model] = ingester
        return ingester
