"""
Tests for the Entry Store

Uses a real temporary weaklog folder and a fixed clock, so every created
entry gets a ``2026-01-27_NNN`` identity.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from weaklog.tests.conftest import SAMPLE_CONTENT


class TestFolderStructure:
    def test_all_stage_folders_created(self, store):
        for name in ["01_Raw", "01_Raw/.archived", "02_Cooling", "03_Triaged",
                     "04_Synthesized", "05_Published"]:
            assert (store.root / name).is_dir()

    def test_idempotent(self, store):
        (store.root / "02_Cooling" / "keep.md").write_text("x")
        store.ensure_folder_structure()
        assert (store.root / "02_Cooling" / "keep.md").exists()

    def test_invalid_status_has_no_folder(self, store):
        from weaklog.common.errors import StoreError
        from weaklog.common.schemas import EntryStatus

        with pytest.raises(StoreError):
            store.stage_dir(EntryStatus.REJECTED)


class TestGenerateId:
    def test_first_id_of_the_day(self, store):
        assert store.generate_id() == "2026-01-27_001"

    def test_next_after_existing(self, store):
        (store.root / "01_Raw" / "2026-01-27_001.md").write_text("x")
        (store.root / "01_Raw" / "2026-01-27_002.md").write_text("x")
        assert store.generate_id() == "2026-01-27_003"

    def test_ids_in_other_stages_count(self, store):
        (store.root / "03_Triaged" / "2026-01-27_004.md").write_text("x")
        (store.root / "01_Raw" / ".archived" / "2026-01-27_005_1.md").write_text("x")
        assert store.generate_id() == "2026-01-27_006"

    def test_other_dates_ignored(self, store):
        (store.root / "01_Raw" / "2026-01-26_009.md").write_text("x")
        assert store.generate_id() == "2026-01-27_001"

    def test_exhausted(self, store):
        from weaklog.common.errors import IdGenerationExhausted

        with patch.object(store, "_id_taken", return_value=True):
            with pytest.raises(IdGenerationExhausted):
                store.generate_id()


class TestCreateAndRead:
    def test_create_writes_raw_document(self, store):
        from weaklog.common.schemas import EntryStatus

        entry = store.create(SAMPLE_CONTENT, 7)

        assert entry.id == "2026-01-27_001"
        assert entry.status == EntryStatus.RAW
        assert entry.createdAt == "2026-01-27T09:00:00+00:00"
        path = Path(entry.path)
        assert path == store.root / "01_Raw" / "2026-01-27_001.md"
        text = path.read_text(encoding="utf-8")
        assert "weaklog_id: 2026-01-27_001" in text
        assert "status: raw" in text
        assert text.endswith(SAMPLE_CONTENT)

    def test_sequential_creates(self, store):
        ids = [store.create(SAMPLE_CONTENT, 7).id for _ in range(3)]
        assert ids == ["2026-01-27_001", "2026-01-27_002", "2026-01-27_003"]

    def test_create_skips_id_claimed_concurrently(self, store):
        taken = store.root / "01_Raw" / "2026-01-27_001.md"
        taken.write_text("another writer", encoding="utf-8")

        with patch.object(store, "generate_id",
                          side_effect=["2026-01-27_001", "2026-01-27_002"]):
            entry = store.create(SAMPLE_CONTENT, 7)

        assert entry.id == "2026-01-27_002"
        assert taken.read_text(encoding="utf-8") == "another writer"

    def test_create_gives_up_after_repeated_collisions(self, store):
        from weaklog.common.errors import IdGenerationExhausted
        (store.root / "01_Raw" / "2026-01-27_001.md").write_text("x")

        with patch.object(store, "generate_id", return_value="2026-01-27_001"):
            with pytest.raises(IdGenerationExhausted):
                store.create(SAMPLE_CONTENT, 7)

    def test_read_round_trip(self, store):
        created = store.create(SAMPLE_CONTENT, 3)

        entry = store.read(created.path)

        assert entry.id == created.id
        assert entry.content == SAMPLE_CONTENT
        assert entry.cooldownDays == 3
        assert entry.createdAt == created.createdAt
        assert entry.triageResult is None

    def test_read_missing_file(self, store, caplog):
        assert store.read(store.root / "01_Raw" / "nope.md") is None
        assert "not found" in caplog.text

    @pytest.mark.parametrize("text", [
        "no header at all",
        "---\ncreated: x\nstatus: raw\n---\nbody",
        "---\nweaklog_id: a\ncreated: x\nstatus: limbo\n---\nbody",
        "---\nkey: [broken\n---\nbody",
    ])
    def test_unreadable_documents(self, store, text):
        path = store.root / "01_Raw" / "bad.md"
        path.write_text(text, encoding="utf-8")
        assert store.read(path) is None

    def test_metadata_round_trip(self, store):
        from weaklog.common.schemas import (
            CheckResult, SynthesisGuide, TriageChecks, TriageResult,
        )
        entry = store.create(SAMPLE_CONTENT, 7)
        triage = TriageResult.from_checks(
            TriageChecks(hasSpecifics=CheckResult(passed=True, reason="a: b")), "Why?"
        )
        guide = SynthesisGuide(questions=["a?", "b?", "c?"])

        store.update_metadata(entry, {"triage_result": triage, "synthesis_guide": guide})
        loaded = store.read(entry.path)

        assert loaded.triageResult == triage
        assert loaded.synthesisGuide == guide
        assert loaded.content == SAMPLE_CONTENT

    def test_corrupt_embedded_json_is_dropped(self, store):
        entry = store.create(SAMPLE_CONTENT, 7)
        store.update_metadata(entry, {"triage_result": "{not json"})

        loaded = store.read(entry.path)

        assert loaded is not None
        assert loaded.triageResult is None

    def test_update_missing_document(self, store):
        from weaklog.common.errors import StoreError

        with pytest.raises(StoreError):
            store.update_metadata(store.root / "01_Raw" / "ghost.md", {"status": "cooling"})

    def test_write_body_keeps_header(self, store):
        entry = store.create(SAMPLE_CONTENT, 7)

        store.write_body(entry, "# Synthesis Draft\n")

        loaded = store.read(entry.path)
        assert loaded.id == entry.id
        assert loaded.content == "# Synthesis Draft"

    def test_list_entries_sorted_and_skips_bad(self, store):
        from weaklog.common.schemas import EntryStatus
        store.create(SAMPLE_CONTENT, 7)
        store.create(SAMPLE_CONTENT, 7)
        (store.root / "01_Raw" / "junk.md").write_text("junk")
        (store.root / "01_Raw" / ".archived" / "old.md").write_text("junk")

        entries = store.list_entries(EntryStatus.RAW)

        assert [e.id for e in entries] == ["2026-01-27_001", "2026-01-27_002"]


class TestTransition:
    def test_moves_and_updates_status(self, store):
        from weaklog.common.schemas import EntryStatus
        entry = store.create(SAMPLE_CONTENT, 7)

        moved = store.transition(entry, EntryStatus.COOLING)

        assert moved.status == EntryStatus.COOLING
        assert Path(moved.path) == store.root / "02_Cooling" / "2026-01-27_001.md"
        assert not Path(entry.path).exists()
        assert store.in_stage(moved, EntryStatus.COOLING)
        assert not store.in_stage(moved, EntryStatus.RAW)

    def test_same_folder_transition_skips_move(self, store):
        from weaklog.common.schemas import EntryStatus
        cooling = store.transition(store.create(SAMPLE_CONTENT, 7), EntryStatus.COOLING)

        ready = store.transition(cooling, EntryStatus.READY_FOR_TRIAGE)

        assert ready.path == cooling.path
        assert ready.status == EntryStatus.READY_FOR_TRIAGE

    def test_collision_changes_nothing(self, store):
        from weaklog.common.errors import TransitionCollisionError
        from weaklog.common.schemas import EntryStatus
        entry = store.create(SAMPLE_CONTENT, 7)
        (store.root / "02_Cooling" / "2026-01-27_001.md").write_text("occupied")

        with pytest.raises(TransitionCollisionError):
            store.transition(entry, EntryStatus.COOLING)

        assert store.read(entry.path).status == EntryStatus.RAW
        assert (store.root / "02_Cooling" / "2026-01-27_001.md").read_text() == "occupied"

    def test_destination_check(self, store):
        from weaklog.common.errors import TransitionCollisionError
        from weaklog.common.schemas import EntryStatus
        entry = store.create(SAMPLE_CONTENT, 7)

        dest = store.ensure_destination_free(entry, EntryStatus.COOLING)
        assert dest == store.root / "02_Cooling" / "2026-01-27_001.md"

        dest.write_text("occupied")
        with pytest.raises(TransitionCollisionError):
            store.ensure_destination_free(entry, EntryStatus.COOLING)

    def test_failed_move_reports_relocation(self, store):
        from weaklog.common.errors import RelocationError
        from weaklog.common.schemas import EntryStatus
        entry = store.create(SAMPLE_CONTENT, 7)

        with patch.object(Path, "rename", side_effect=PermissionError("denied")):
            with pytest.raises(RelocationError) as exc_info:
                store.transition(entry, EntryStatus.COOLING)

        assert exc_info.value.source == entry.path
        assert exc_info.value.destination.endswith("02_Cooling/2026-01-27_001.md")
        # Header already updated, file still in the old folder
        assert store.read(entry.path).status == EntryStatus.COOLING


class TestArchive:
    def test_archive_moves_document(self, store):
        entry = store.create(SAMPLE_CONTENT, 7)

        target = store.archive(entry)

        assert target == store.archive_dir / "2026-01-27_001.md"
        assert target.exists()
        assert not Path(entry.path).exists()

    def test_archive_name_collision_gets_suffix(self, store):
        entry = store.create(SAMPLE_CONTENT, 7)
        (store.archive_dir / "2026-01-27_001.md").write_text("older")
        (store.archive_dir / "2026-01-27_001_1.md").write_text("older")

        target = store.archive(entry)

        assert target.name == "2026-01-27_001_2.md"

    def test_archive_failure(self, store):
        from weaklog.common.errors import ArchiveError
        entry = store.create(SAMPLE_CONTENT, 7)

        with patch.object(Path, "rename", side_effect=OSError("disk gone")):
            with pytest.raises(ArchiveError):
                store.archive(entry)

    def test_archive_target_does_not_move(self, store):
        entry = store.create(SAMPLE_CONTENT, 7)

        target = store.archive_target(entry)

        assert target == store.archive_dir / "2026-01-27_001.md"
        assert not target.exists()
        assert Path(entry.path).exists()

    def test_no_free_archive_name(self, store):
        from weaklog.common.errors import ArchiveError
        entry = store.create(SAMPLE_CONTENT, 7)
        (store.archive_dir / "2026-01-27_001.md").write_text("older")
        for n in range(1, 100):
            (store.archive_dir / f"2026-01-27_001_{n}.md").write_text("older")

        with pytest.raises(ArchiveError):
            store.archive_target(entry)
        assert Path(entry.path).exists()
