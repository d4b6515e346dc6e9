"""Change detection and candidate discovery tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from hashbackup.tracking import (
    CandidateScanner,
    ChangeTracker,
    HashComputer,
    MissingSourceDirectoryError,
)


def _region(tmp_path: Path) -> Path:
    region = tmp_path / "world1" / "region"
    region.mkdir(parents=True)
    return region


def test_first_observation_is_reported_as_changed(tmp_path: Path) -> None:
    region = _region(tmp_path)
    path = region / "r.0.0.mca"
    path.write_bytes(b"A")
    fingerprints: dict[str, str] = {}

    changes = ChangeTracker(fingerprints).detect([path])

    assert changes.paths == [path]
    assert changes.changed[0].previous is None
    assert changes.changed[0].fingerprint == HashComputer().compute(path)


def test_detect_does_not_record_until_commit(tmp_path: Path) -> None:
    region = _region(tmp_path)
    path = region / "r.0.0.mca"
    path.write_bytes(b"A")
    fingerprints: dict[str, str] = {}
    tracker = ChangeTracker(fingerprints)

    changes = tracker.detect([path])
    assert fingerprints == {}

    tracker.commit(changes)
    assert fingerprints == {str(path): changes.changed[0].fingerprint}
    assert tracker.recorded(path) == changes.changed[0].fingerprint


def test_unchanged_files_are_not_reported_after_commit(tmp_path: Path) -> None:
    region = _region(tmp_path)
    path = region / "r.0.0.mca"
    path.write_bytes(b"A")
    tracker = ChangeTracker({})
    tracker.commit(tracker.detect([path]))

    again = tracker.detect([path])

    assert again.changed == []
    assert again.unchanged == 1


def test_modified_file_reports_previous_fingerprint(tmp_path: Path) -> None:
    region = _region(tmp_path)
    path = region / "r.0.0.mca"
    path.write_bytes(b"A")
    tracker = ChangeTracker({})
    first = tracker.detect([path])
    tracker.commit(first)

    path.write_bytes(b"B")
    second = tracker.detect([path])

    assert second.paths == [path]
    assert second.changed[0].previous == first.changed[0].fingerprint
    assert second.changed[0].fingerprint != first.changed[0].fingerprint


def test_unreadable_file_does_not_abort_siblings(tmp_path: Path) -> None:
    region = _region(tmp_path)
    good = region / "r.0.0.mca"
    good.write_bytes(b"A")
    missing = region / "r.9.9.mca"

    changes = ChangeTracker({}).detect([missing, good])

    assert changes.paths == [good]
    assert len(changes.errors) == 1
    assert "r.9.9.mca" in changes.errors[0]


def test_stale_entries_are_tolerated(tmp_path: Path) -> None:
    region = _region(tmp_path)
    path = region / "r.0.0.mca"
    path.write_bytes(b"A")
    fingerprints = {str(region / "gone.mca"): "0" * 40}
    tracker = ChangeTracker(fingerprints)

    tracker.commit(tracker.detect([path]))

    assert str(region / "gone.mca") in fingerprints
    assert str(path) in fingerprints


def test_scanner_filters_by_extension(tmp_path: Path) -> None:
    region = _region(tmp_path)
    (region / "r.0.0.mca").write_bytes(b"A")
    (region / "r.0.1.mca").write_bytes(b"B")
    (region / "notes.txt").write_text("skip", encoding="utf-8")
    (region / "nested.mca").mkdir()

    found = list(CandidateScanner(extension=".mca").scan(region))

    assert [path.name for path in found] == ["r.0.0.mca", "r.0.1.mca"]
    assert all(path.is_absolute() for path in found)


def test_scanner_missing_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(MissingSourceDirectoryError):
        list(CandidateScanner(extension=".mca").scan(tmp_path / "absent"))
