"""
Shared fixtures for ingester tests.

FakeRestClient records every repository call in order so tests can
assert on call sequence, and can be told to fail specific calls.
"""

import logging
from pathlib import Path

import pytest

from islandora_ingest.ingestion.ingesters import IngesterRegistry
from islandora_ingest.ingestion.rest_client import RepositoryError
from islandora_ingest.models import IngestConfig, IngestContext

MODS_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<mods xmlns="http://www.loc.gov/mods/v3">
  <titleInfo>
    <title>{title}</title>
  </titleInfo>{extra}
</mods>
"""


class FakeRestClient:
    """In-memory stand-in for IslandoraRestClient."""

    def __init__(self, tmp_dir: Path):
        self.tmp_dir = tmp_dir
        self.calls: list[tuple] = []
        self.created: dict[str, object] = {}
        self.fail_create_labels: set[str] = set()
        self.fail_predicates: set[str] = set()
        self.fail_dsids: set[str] = set()
        self.missing_thumbnails: set[str] = set()
        self.reachable = True
        self.object_status = 200
        self._counter = 0
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def create_object(self, spec):
        self.calls.append(("create_object", spec.label))
        if spec.label in self.fail_create_labels:
            raise RepositoryError(f"cannot create {spec.label}", status_code=500)
        if spec.pid:
            pid = spec.pid
        else:
            self._counter += 1
            pid = f"{spec.namespace}:{self._counter}"
        self.created[pid] = spec
        return pid

    def get_object(self, pid):
        self.calls.append(("get_object", pid))
        return self.object_status

    def set_relationship(self, triple):
        self.calls.append(("set_relationship", triple.subject_pid, triple.predicate, triple.object))
        if triple.predicate in self.fail_predicates:
            raise RepositoryError(f"cannot set {triple.predicate}", status_code=500)

    def upload_datastream(self, pid, spec, replace=False):
        self.calls.append(("upload_datastream", pid, spec.dsid, replace))
        if spec.dsid in self.fail_dsids:
            raise RepositoryError(f"cannot upload {spec.dsid}", status_code=500)

    def ping(self):
        self.calls.append(("ping",))
        return self.reachable

    def download_datastream(self, pid, dsid):
        self.calls.append(("download_datastream", pid, dsid))
        if pid in self.missing_thumbnails:
            return None
        path = self.tmp_dir / f"{pid.replace(':', '_')}_{dsid}"
        path.write_bytes(b"thumbnail")
        return path

    def calls_named(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    def calls_for(self, pid: str) -> list[tuple]:
        return [call for call in self.calls if len(call) > 1 and call[1] == pid]


def write_mods(directory: Path, title: str, extra: str = "") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "MODS.xml"
    path.write_text(MODS_TEMPLATE.format(title=title, extra=extra), encoding="utf-8")
    return path


def make_object_dir(
    root: Path,
    name: str,
    title: str | None = "Test object",
    files: dict[str, bytes] | None = None,
) -> Path:
    """Create an object directory with an optional MODS.xml and content files."""
    directory = root / name
    directory.mkdir(parents=True, exist_ok=True)
    if title is not None:
        write_mods(directory, title)
    for filename, content in (files or {}).items():
        (directory / filename).write_bytes(content)
    return directory


def make_config(tmp_path: Path, **overrides) -> IngestConfig:
    values = {
        "input_dir": tmp_path / "input",
        "parent": "test:collection",
        "owner": "admin",
        "user": "admin",
        "token": "secret",
        "namespace": "test",
        "log": tmp_path / "ingester.log",
    }
    values.update(overrides)
    return IngestConfig(**values)


@pytest.fixture
def fake_client(tmp_path) -> FakeRestClient:
    downloads = tmp_path / "downloads"
    downloads.mkdir()
    return FakeRestClient(downloads)


@pytest.fixture
def input_dir(tmp_path) -> Path:
    path = tmp_path / "input"
    path.mkdir()
    return path


@pytest.fixture
def context(tmp_path, fake_client) -> IngestContext:
    return IngestContext(
        config=make_config(tmp_path),
        client=fake_client,
        logger=logging.getLogger("islandora_ingest.test"),
        registry=IngesterRegistry(),
    )


@pytest.fixture
def make_context(tmp_path, fake_client):
    """Build a context with configuration overrides."""

    def _make(**overrides) -> IngestContext:
        return IngestContext(
            config=make_config(tmp_path, **overrides),
            client=fake_client,
            logger=logging.getLogger("islandora_ingest.test"),
            registry=IngesterRegistry(),
        )

    return _make
