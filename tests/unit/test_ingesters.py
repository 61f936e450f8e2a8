"""
Unit tests for the object ingesters.

Covers the per-object call sequence, composite recursion with failure
isolation, thumbnail back-fill, and the content model registry.
"""

import json

import pytest
from conftest import make_object_dir, write_mods

from islandora_ingest.ingestion import ingesters
from islandora_ingest.ingestion.ingesters import (
    BookIngester,
    CompoundIngester,
    Ingester,
    IngesterRegistry,
    NewspaperIssueIngester,
    SingleIngester,
)
from islandora_ingest.models import ConfigurationError, IngestionStatus


class RecordingIngester(SingleIngester):
    """Custom ingester used by classmap tests."""

    kind = "recording"


def make_book(input_dir, name="book", pages=("001", "002", "003")):
    book = make_object_dir(input_dir, name, title="A Book")
    for page in pages:
        make_object_dir(book, page, title=None, files={"OBJ.tif": b"page"})
    return book


def test_single_object_call_sequence(context, input_dir, fake_client):
    """Test create, content model, membership, then datastreams."""
    directory = make_object_dir(input_dir, "obj", title="A Map", files={"map.jp2": b"x"})

    result = SingleIngester(context).package_object(directory)

    assert result.status == IngestionStatus.DONE
    assert result.is_success()
    assert result.pid == "test:1"
    assert result.datastreams_uploaded == ["MODS", "OBJ"]
    assert fake_client.calls == [
        ("create_object", "A Map"),
        ("set_relationship", "test:1", "hasModel", "islandora:sp_large_image_cmodel"),
        ("set_relationship", "test:1", "isMemberOfCollection", "test:collection"),
        ("upload_datastream", "test:1", "MODS", False),
        ("upload_datastream", "test:1", "OBJ", False),
    ]


def test_configured_relationship_predicate(make_context, input_dir, fake_client):
    context = make_context(relationship="isMemberOf")
    directory = make_object_dir(input_dir, "obj", files={"OBJ.pdf": b"x"})

    SingleIngester(context).package_object(directory)

    assert ("set_relationship", "test:1", "isMemberOf", "test:collection") in fake_client.calls


def test_missing_mods_is_skipped_not_failed(context, input_dir, fake_client):
    directory = make_object_dir(input_dir, "obj", title=None, files={"OBJ.pdf": b"x"})

    result = SingleIngester(context).package_object(directory)

    assert result.status == IngestionStatus.SKIPPED
    assert result.pid is None
    assert fake_client.calls == []
    assert not context.had_errors


def test_create_failure_is_object_fatal(context, input_dir, fake_client):
    directory = make_object_dir(input_dir, "obj", title="Broken", files={"OBJ.pdf": b"x"})
    fake_client.fail_create_labels.add("Broken")

    result = SingleIngester(context).package_object(directory)

    assert result.status == IngestionStatus.FAILED
    assert result.pid is None
    assert "cannot create" in result.error_message
    assert fake_client.calls == [("create_object", "Broken")]
    assert context.had_errors


def test_relationship_failure_is_not_fatal(context, input_dir, fake_client):
    directory = make_object_dir(input_dir, "obj", files={"OBJ.pdf": b"x"})
    fake_client.fail_predicates.add("isMemberOfCollection")

    result = SingleIngester(context).package_object(directory)

    assert result.status == IngestionStatus.DONE
    assert result.datastreams_uploaded == ["MODS", "OBJ"]
    assert context.had_errors


def test_content_model_set_before_datastreams(context, input_dir, fake_client):
    """Test every object's hasModel triple precedes its datastream uploads."""
    book = make_book(input_dir)

    BookIngester(context).package_object(book)

    for pid in fake_client.created:
        calls = fake_client.calls_for(pid)
        model_index = next(
            i for i, c in enumerate(calls) if c[0] == "set_relationship" and c[2] == "hasModel"
        )
        upload_indexes = [i for i, c in enumerate(calls) if c[0] == "upload_datastream"]
        assert upload_indexes, pid
        assert all(model_index < i for i in upload_indexes), pid


def test_book_with_failing_page(context, input_dir, fake_client):
    """Test one failed page leaves the book and its other pages intact."""
    book = make_book(input_dir)
    fake_client.fail_create_labels.add("Page 002")

    result = BookIngester(context).package_object(book)

    assert result.status == IngestionStatus.DONE
    assert result.pid == "test:1"
    assert [c.status for c in result.child_results] == [
        IngestionStatus.DONE,
        IngestionStatus.FAILED,
        IngestionStatus.DONE,
    ]
    first_page = result.child_results[0]
    assert first_page.pid == "test:2"
    assert result.child_results[2].pid == "test:3"
    assert result.failed_children == [result.child_results[1]]

    assert fake_client.calls_named("download_datastream") == [
        ("download_datastream", first_page.pid, "TN")
    ]
    assert fake_client.calls[-1] == ("upload_datastream", "test:1", "TN", True)
    assert "TN" in result.datastreams_uploaded
    assert context.had_errors


def test_page_relationships(context, input_dir, fake_client):
    book = make_book(input_dir, pages=("001",))

    BookIngester(context).package_object(book)

    page_relationships = [
        (c[2], c[3]) for c in fake_client.calls_for("test:2") if c[0] == "set_relationship"
    ]
    assert page_relationships == [
        ("hasModel", "islandora:pageCModel"),
        ("isMemberOf", "test:1"),
        ("isPageOf", "test:1"),
        ("isSequenceNumber", "001"),
        ("isPageNumber", "001"),
        ("isSection", "1"),
    ]
    assert fake_client.created["test:2"].label == "Page 001"
    assert fake_client.created["test:1"].content_model == "islandora:bookCModel"


def test_pages_are_processed_in_numeric_order(context, input_dir, fake_client):
    book = make_book(input_dir, pages=("10", "9", "1"))

    BookIngester(context).package_object(book)

    labels = [c[1] for c in fake_client.calls_named("create_object")]
    assert labels == ["A Book", "Page 1", "Page 9", "Page 10"]


def test_book_with_no_successful_pages(context, input_dir, fake_client):
    book = make_book(input_dir, pages=("001",))
    fake_client.fail_create_labels.add("Page 001")

    result = BookIngester(context).package_object(book)

    assert result.status == IngestionStatus.DONE
    assert fake_client.calls_named("download_datastream") == []
    assert "TN" not in result.datastreams_uploaded


def test_thumbnail_download_failure_is_not_fatal(context, input_dir, fake_client):
    book = make_book(input_dir, pages=("001",))
    fake_client.missing_thumbnails.add("test:2")

    result = BookIngester(context).package_object(book)

    assert result.status == IngestionStatus.DONE
    assert ("upload_datastream", "test:1", "TN", True) not in fake_client.calls


def test_downloaded_thumbnail_is_removed(context, input_dir, fake_client):
    book = make_book(input_dir, pages=("001",))

    BookIngester(context).package_object(book)

    assert list(fake_client.tmp_dir.iterdir()) == []


def test_book_create_failure_abandons_pages(context, input_dir, fake_client):
    book = make_book(input_dir)
    fake_client.fail_create_labels.add("A Book")

    result = BookIngester(context).package_object(book)

    assert result.status == IngestionStatus.FAILED
    assert result.child_results == []
    assert fake_client.calls == [("create_object", "A Book")]


def test_newspaper_issue(context, input_dir, fake_client):
    issue = make_object_dir(input_dir, "issue", title=None)
    write_mods(
        issue,
        "Daily News, March 2, 1915",
        extra="<originInfo><dateIssued>1915-03-02</dateIssued></originInfo>",
    )
    make_object_dir(issue, "1", title=None, files={"OBJ.tif": b"x"})

    result = NewspaperIssueIngester(context).package_object(issue)

    assert result.status == IngestionStatus.DONE
    issue_relationships = [
        (c[2], c[3]) for c in fake_client.calls_for("test:1") if c[0] == "set_relationship"
    ]
    assert issue_relationships == [
        ("hasModel", "islandora:newspaperIssueCModel"),
        ("isMemberOfCollection", "test:collection"),
        ("dateIssued", "1915-03-02"),
    ]
    assert fake_client.created["test:2"].content_model == "islandora:newspaperPageCModel"


def test_compound_object(context, input_dir, fake_client):
    compound = make_object_dir(input_dir, "compound", title="Letters")
    make_object_dir(compound, "1", title="Letter one", files={"OBJ.pdf": b"x"})
    make_object_dir(compound, "2", title="Letter two", files={"photo.jpg": b"x"})
    make_object_dir(compound, "3", title=None, files={"OBJ.pdf": b"x"})

    result = CompoundIngester(context).package_object(compound)

    assert result.status == IngestionStatus.DONE
    assert [c.status for c in result.child_results] == [
        IngestionStatus.DONE,
        IngestionStatus.DONE,
        IngestionStatus.SKIPPED,
    ]
    assert fake_client.created["test:2"].content_model == "islandora:sp_pdf"
    assert fake_client.created["test:3"].content_model == "islandora:sp_basic_image"

    constituent_calls = [
        (c[2], c[3]) for c in fake_client.calls_for("test:3") if c[0] == "set_relationship"
    ]
    assert constituent_calls == [
        ("hasModel", "islandora:sp_basic_image"),
        ("isConstituentOf", "test:1"),
        ("isSequenceNumberOftest_1", "2"),
    ]
    assert ("download_datastream", "test:2", "TN") in fake_client.calls


def test_page_with_scanner_file_name(context, input_dir, fake_client):
    """Test a page file named like P001.tif is uploaded as OBJ."""
    book = make_object_dir(input_dir, "book", title="A Book")
    make_object_dir(book, "001", title=None, files={"P001.tif": b"page"})

    BookIngester(context).package_object(book)

    page_uploads = [c[2] for c in fake_client.calls_for("test:2") if c[0] == "upload_datastream"]
    assert page_uploads == ["OBJ"]


def test_undecodable_cmodel_file_falls_back_to_extension(context, input_dir, fake_client):
    compound = make_object_dir(input_dir, "compound", title="Letters")
    make_object_dir(compound, "1", title="Letter one", files={"OBJ.pdf": b"x"})
    make_object_dir(
        compound,
        "2",
        title="Letter two",
        files={"cmodel.txt": b"\xff\xfeislandora:sp_pdf", "IMG_0001.JPG": b"x"},
    )
    make_object_dir(compound, "3", title="Letter three", files={"OBJ.pdf": b"x"})

    result = CompoundIngester(context).package_object(compound)

    assert result.status == IngestionStatus.DONE
    assert [c.status for c in result.child_results] == [IngestionStatus.DONE] * 3
    assert fake_client.created["test:3"].content_model == "islandora:sp_basic_image"


def test_unexpected_child_error_does_not_abort_composite(
    context, input_dir, fake_client, monkeypatch
):
    """Test an unexpected error in one page fails only that page."""
    book = make_book(input_dir)
    original_classify = ingesters.classify

    def failing_classify(context, directory, **kwargs):
        if directory.name == "002":
            raise OSError("unreadable page")
        return original_classify(context, directory, **kwargs)

    monkeypatch.setattr(ingesters, "classify", failing_classify)

    result = BookIngester(context).package_object(book)

    assert result.status == IngestionStatus.DONE
    assert [c.status for c in result.child_results] == [
        IngestionStatus.DONE,
        IngestionStatus.FAILED,
        IngestionStatus.DONE,
    ]
    assert "unreadable page" in result.child_results[1].error_message
    assert ("create_object", "Page 003") in fake_client.calls
    assert ("download_datastream", "test:2", "TN") in fake_client.calls
    assert fake_client.calls[-1] == ("upload_datastream", "test:1", "TN", True)
    assert context.had_errors


def test_registry_lookup():
    registry = IngesterRegistry()

    assert registry.lookup("islandora:bookCModel") is BookIngester
    assert registry.lookup("islandora:newspaperIssueCModel") is NewspaperIssueIngester
    assert registry.lookup("islandora:compoundCModel") is CompoundIngester
    assert registry.lookup("islandora:sp_pdf") is SingleIngester
    assert registry.lookup("books") is BookIngester
    assert registry.lookup("islandora:unknownCModel") is None


def test_registry_create(context):
    registry = IngesterRegistry()

    single = registry.create(context, "islandora:sp_pdf")
    assert isinstance(single, SingleIngester)
    assert single.content_model == "islandora:sp_pdf"
    assert registry.create(context, "islandora:sp_pdf") is single

    assert registry.create(context, "single").content_model is None
    assert registry.create(context, "books").content_model == "islandora:bookCModel"


def test_registry_unknown_content_model(context):
    with pytest.raises(ConfigurationError, match="not recognized"):
        IngesterRegistry().create(context, "islandora:unknownCModel")


def test_classmap_override(tmp_path, context):
    classmap = tmp_path / "classmap.json"
    classmap.write_text(
        json.dumps({"islandora:customCModel": "test_ingesters:RecordingIngester"})
    )
    registry = IngesterRegistry()

    registry.load_classmap(classmap)

    assert registry.lookup("islandora:customCModel") is RecordingIngester
    ingester = registry.create(context, "islandora:customCModel")
    assert isinstance(ingester, Ingester)
    assert ingester.content_model == "islandora:customCModel"


def test_classmap_errors(tmp_path):
    registry = IngesterRegistry()

    with pytest.raises(ConfigurationError):
        registry.load_classmap(tmp_path / "missing.json")

    bad_module = tmp_path / "bad_module.json"
    bad_module.write_text(json.dumps({"x:y": "no_such_module_here:Thing"}))
    with pytest.raises(ConfigurationError):
        registry.load_classmap(bad_module)

    not_ingester = tmp_path / "not_ingester.json"
    not_ingester.write_text(json.dumps({"x:y": "json:dumps"}))
    with pytest.raises(ConfigurationError):
        registry.load_classmap(not_ingester)
