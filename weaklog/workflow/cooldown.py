"""
Cooldown Scheduler

Tracks when each cooling entry becomes ready for triage. The index is a
derived shadow of the entry documents: it may be pruned or rebuilt at any
time and is never the authority on an entry's stage.

Index file: ``02_Cooling/.cooldown.json``

    {"entries": [CooldownEntry, ...], "lastChecked": "<ISO 8601>"}

Before every write the current file is copied to ``.cooldown.backup.json``.
If that copy fails the write is not attempted. There is no locking; the
index assumes a single operator.
"""

import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from ..common.errors import SchedulerError
from ..common.schemas import CooldownData, CooldownEntry, Entry, iso_now, parse_iso, utc_now

logger = logging.getLogger("weaklog.workflow.cooldown")

INDEX_NAME = ".cooldown.json"
BACKUP_NAME = ".cooldown.backup.json"
COOLING_FOLDER = "02_Cooling"


def status_message(ready: List[CooldownEntry]) -> str:
    if not ready:
        return "No entries ready for triage yet"
    if len(ready) == 1:
        return f"1 entry is ready for triage: {ready[0].weaklogId}"
    return f"{len(ready)} entries are ready for triage"


class CooldownScheduler:
    """Persisted readiness index for cooling entries."""

    def __init__(self, folder_path: Union[str, Path]):
        self.root = Path(folder_path).expanduser()
        self.index_path = self.root / COOLING_FOLDER / INDEX_NAME
        self.backup_path = self.index_path.with_name(BACKUP_NAME)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load_raw(self) -> Tuple[List[Any], str]:
        """Raw index content. Missing or corrupt files read as empty."""
        if not self.index_path.exists():
            logger.debug("No cooldown file found, returning empty data")
            return [], iso_now()
        try:
            with open(self.index_path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.error("Failed to load cooldown data, treating as empty: %s", e)
            return [], iso_now()

        if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
            logger.warning("Invalid cooldown data structure, resetting")
            return [], iso_now()
        return data["entries"], str(data.get("lastChecked") or iso_now())

    def load(self) -> CooldownData:
        """Parsed index. Malformed records are skipped here and pruned by
        :meth:`validate_and_clean`."""
        raw_entries, last_checked = self._load_raw()
        entries = []
        for raw in raw_entries:
            try:
                entries.append(CooldownEntry.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping malformed cooldown record: %s", raw)
        return CooldownData(entries=entries, lastChecked=last_checked)

    def save(self, data: Union[CooldownData, Dict[str, Any]]) -> None:
        """
        Write the index, backing up the previous version first.

        Raises:
            SchedulerError: the backup copy failed (nothing written) or the
                write itself failed
        """
        self.index_path.parent.mkdir(parents=True, exist_ok=True)

        if self.index_path.exists():
            try:
                shutil.copy2(self.index_path, self.backup_path)
            except OSError as e:
                logger.error("Cooldown backup failed, index not written: %s", e)
                raise SchedulerError(
                    f"Failed to back up cooldown data: {e}",
                    user_message="Failed to save cooldown data (backup failed).",
                ) from e
            logger.debug("Created cooldown backup")

        payload = data.model_dump() if isinstance(data, CooldownData) else data
        try:
            with open(self.index_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error("Failed to save cooldown data: %s", e)
            raise SchedulerError(f"Failed to save cooldown data: {e}",
                                 user_message="Failed to save cooldown data.") from e
        logger.debug("Saved cooldown data")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register(self, entry: Entry, cooldown_days: Optional[int] = None,
                 file_path: Optional[str] = None) -> CooldownEntry:
        """
        Start (or restart) tracking ``entry``.

        ``readyAt`` is computed here, once, from the entry's creation time.
        An existing record with the same id is replaced.
        """
        days = cooldown_days if cooldown_days is not None else entry.cooldownDays
        record = CooldownEntry.register(
            weaklog_id=entry.id,
            file_path=file_path or entry.path or "",
            created_at=parse_iso(entry.createdAt),
            cooldown_days=days,
        )

        data = self.load()
        data.entries = [e for e in data.entries if e.weaklogId != entry.id]
        data.entries.append(record)
        data.lastChecked = iso_now()
        self.save(data)

        logger.info("Registered cooldown for %s (ready at %s)", entry.id, record.readyAt)
        return record

    def unregister(self, weaklog_id: str) -> bool:
        """Stop tracking an entry. Absent ids are logged, not an error.

        Returns True if a record was removed.
        """
        data = self.load()
        remaining = [e for e in data.entries if e.weaklogId != weaklog_id]
        if len(remaining) == len(data.entries):
            logger.warning("Entry %s not found in cooldown data", weaklog_id)
            return False

        data.entries = remaining
        data.lastChecked = iso_now()
        self.save(data)
        logger.info("Unregistered cooldown for %s", weaklog_id)
        return True

    def get(self, weaklog_id: str) -> Optional[CooldownEntry]:
        for e in self.load().entries:
            if e.weaklogId == weaklog_id:
                return e
        return None

    def get_ready(self, now: Optional[datetime] = None) -> List[CooldownEntry]:
        """Entries whose readyAt is at or before ``now``."""
        now = now or utc_now()
        ready = []
        for e in self.load().entries:
            try:
                if e.is_ready(now):
                    ready.append(e)
            except ValueError:
                logger.warning("Unparseable readyAt for %s: %s", e.weaklogId, e.readyAt)
        return ready

    def all_entries(self) -> List[CooldownEntry]:
        return self.load().entries

    def check_status(self, now: Optional[datetime] = None) -> str:
        """User-facing readiness summary."""
        ready = self.get_ready(now)
        message = status_message(ready)
        logger.info(message)
        if ready:
            logger.debug("Ready entries: %s", ", ".join(e.weaklogId for e in ready))
        return message

    def clear(self) -> None:
        self.save(CooldownData())
        logger.info("Cleared all cooldown entries")

    def validate_and_clean(self) -> int:
        """
        Prune records with missing fields, unparseable dates, or documents
        that no longer exist.

        Returns:
            Number of records removed
        """
        raw_entries, _ = self._load_raw()
        valid: List[CooldownEntry] = []

        for raw in raw_entries:
            try:
                record = CooldownEntry.model_validate(raw)
            except ValidationError:
                logger.warning("Removing invalid entry: %s", raw)
                continue
            if not record.weaklogId or not record.filePath or not record.readyAt:
                logger.warning("Removing invalid entry: %s", raw)
                continue

            try:
                parse_iso(record.readyAt)
                parse_iso(record.createdAt)
            except ValueError:
                logger.warning("Removing entry with invalid date: %s", record.weaklogId)
                continue

            if not self._document_exists(record.filePath):
                logger.warning("Removing entry for missing file: %s", record.weaklogId)
                continue

            valid.append(record)

        removed = len(raw_entries) - len(valid)
        self.save(CooldownData(entries=valid, lastChecked=iso_now()))
        if removed:
            logger.info("Cleaned %d invalid cooldown entries", removed)
        return removed

    def _document_exists(self, stored_path: str) -> bool:
        path = Path(stored_path)
        if not path.is_absolute():
            path = self.root / path
        return path.is_file()
