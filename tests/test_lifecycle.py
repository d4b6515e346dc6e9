"""Active-archive lifecycle tests."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from hashbackup.archive import ArchiveLifecycle
from hashbackup.state import ActiveArchive

DAY_MS = 24 * 60 * 60 * 1000


def test_first_cycle_creates_active_archive() -> None:
    records: dict[str, ActiveArchive] = {}
    lifecycle = ArchiveLifecycle(records, max_age_ms=DAY_MS)

    decision = lifecycle.ensure_active("world1", 1_000)

    assert decision.action == "created"
    assert decision.active == ActiveArchive(file="backup_1000.zip", created=1_000)
    assert records["world1"] is decision.active
    assert decision.retired is None


def test_archive_is_kept_until_threshold() -> None:
    records: dict[str, ActiveArchive] = {}
    lifecycle = ArchiveLifecycle(records, max_age_ms=DAY_MS)
    lifecycle.ensure_active("world1", 1_000)

    decision = lifecycle.ensure_active("world1", 1_000 + DAY_MS - 1)

    assert decision.action == "kept"
    assert decision.active.file == "backup_1000.zip"


def test_archive_rotates_exactly_at_threshold() -> None:
    records: dict[str, ActiveArchive] = {}
    lifecycle = ArchiveLifecycle(records, max_age_ms=DAY_MS)
    lifecycle.ensure_active("world1", 1_000)

    decision = lifecycle.ensure_active("world1", 1_000 + DAY_MS)

    assert decision.action == "rotated"
    assert decision.retired == "backup_1000.zip"
    assert decision.active == ActiveArchive(file=f"backup_{1_000 + DAY_MS}.zip", created=1_000 + DAY_MS)
    assert records["world1"] == decision.active


def test_worlds_rotate_independently() -> None:
    records = {"old": ActiveArchive(file="backup_0.zip", created=0)}
    lifecycle = ArchiveLifecycle(records, max_age_ms=DAY_MS)

    assert lifecycle.ensure_active("old", DAY_MS).action == "rotated"
    assert lifecycle.ensure_active("new", DAY_MS).action == "created"
    assert lifecycle.active("missing") is None


def test_active_archive_record_is_immutable() -> None:
    record = ActiveArchive.started_at(5)

    with pytest.raises(ValidationError):
        record.created = 6  # type: ignore[misc]


def test_non_positive_threshold_rejected() -> None:
    with pytest.raises(ValueError):
        ArchiveLifecycle({}, max_age_ms=0)
