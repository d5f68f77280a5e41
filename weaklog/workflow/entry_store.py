"""
Entry Store

The document on disk is the authoritative copy of an entry. Its stage is
encoded twice, in the ``status`` header field and in the folder it lives
in, and ``transition()`` is the only sanctioned way to change either.

Folder layout under the weaklog root:

    01_Raw/            raw
    01_Raw/.archived/  rejected (never deleted)
    02_Cooling/        cooling, ready-for-triage
    03_Triaged/        triaged
    04_Synthesized/    synthesized
    05_Published/      published
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from ..common.errors import (
    ArchiveError,
    IdGenerationExhausted,
    RelocationError,
    StoreError,
    TransitionCollisionError,
)
from ..common.schemas import Entry, EntryStatus, SynthesisGuide, TriageResult
from . import frontmatter
from .frontmatter import FrontmatterError

logger = logging.getLogger("weaklog.workflow.entry_store")

STAGE_FOLDERS = {
    EntryStatus.RAW: "01_Raw",
    EntryStatus.COOLING: "02_Cooling",
    EntryStatus.READY_FOR_TRIAGE: "02_Cooling",
    EntryStatus.TRIAGED: "03_Triaged",
    EntryStatus.SYNTHESIZED: "04_Synthesized",
    EntryStatus.PUBLISHED: "05_Published",
}
ARCHIVE_FOLDER = "01_Raw/.archived"

MAX_ID_ATTEMPTS = 100
MAX_ARCHIVE_ATTEMPTS = 100

_SEQ_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})_(\d{3})(?:_\d+)?$")

EntryRef = Union[Entry, Path, str]


def _local_now() -> datetime:
    return datetime.now().astimezone()


class EntryStore:
    """File-backed store for weaklog entries."""

    def __init__(self, folder_path: Union[str, Path],
                 clock: Callable[[], datetime] = _local_now):
        self.root = Path(folder_path).expanduser()
        self._clock = clock

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def stage_dir(self, status: EntryStatus) -> Path:
        try:
            return self.root / STAGE_FOLDERS[EntryStatus(status)]
        except KeyError:
            raise StoreError(f"Invalid target status: {status}") from None

    @property
    def archive_dir(self) -> Path:
        return self.root / ARCHIVE_FOLDER

    def ensure_folder_structure(self) -> None:
        """Create every stage folder and the archive. Idempotent."""
        for folder in sorted(set(STAGE_FOLDERS.values())):
            (self.root / folder).mkdir(parents=True, exist_ok=True)
        self.archive_dir.mkdir(parents=True, exist_ok=True)

    def in_stage(self, entry: EntryRef, status: EntryStatus) -> bool:
        """True if the document physically resides in ``status``'s folder."""
        path = self._path_of(entry)
        return path.exists() and path.parent.resolve() == self.stage_dir(status).resolve()

    def relative(self, path: Path) -> str:
        """Path relative to the weaklog root, as stored in the cooldown index."""
        try:
            return Path(path).resolve().relative_to(self.root.resolve()).as_posix()
        except ValueError:
            return str(path)

    def resolve(self, stored_path: str) -> Path:
        path = Path(stored_path)
        return path if path.is_absolute() else self.root / path

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def _id_folders(self) -> List[Path]:
        return [self.root / f for f in sorted(set(STAGE_FOLDERS.values()))] + [self.archive_dir]

    def _existing_ids(self) -> List[str]:
        stems = []
        for folder in self._id_folders():
            if folder.is_dir():
                stems.extend(p.stem for p in folder.glob("*.md"))
        return stems

    def _id_taken(self, weaklog_id: str) -> bool:
        name = f"{weaklog_id}.md"
        return any((folder / name).exists() for folder in self._id_folders())

    def generate_id(self, now: Optional[datetime] = None) -> str:
        """
        Next free ``YYYY-MM-DD_NNN`` for today.

        Sequence numbers are unique per date across every stage, so an
        entry keeps its identity wherever it moves.

        Raises:
            IdGenerationExhausted: 100 consecutive candidates were taken
        """
        date_str = (now or self._clock()).strftime("%Y-%m-%d")

        numbers = []
        for stem in self._existing_ids():
            match = _SEQ_RE.match(stem)
            if match and match.group(1) == date_str:
                numbers.append(int(match.group(2)))
        next_num = max(numbers) + 1 if numbers else 1

        for attempt in range(MAX_ID_ATTEMPTS):
            candidate = f"{date_str}_{next_num + attempt:03d}"
            if not self._id_taken(candidate):
                return candidate

        raise IdGenerationExhausted(
            f"Failed to generate unique weaklog ID after {MAX_ID_ATTEMPTS} attempts",
            user_message="Could not allocate an entry ID. Please try again.",
        )

    # ------------------------------------------------------------------
    # Create / read / update
    # ------------------------------------------------------------------

    def create(self, content: str, cooldown_days: int) -> Entry:
        """Write a new raw document and return it.

        The id is claimed by the exclusive create itself; if another writer
        takes the candidate first, the next sequence number is tried.

        Raises:
            IdGenerationExhausted: no id could be claimed in 100 attempts
            StoreError: the document could not be written
        """
        now = self._clock()
        created_at = now.isoformat()
        raw_dir = self.stage_dir(EntryStatus.RAW)
        raw_dir.mkdir(parents=True, exist_ok=True)

        for _ in range(MAX_ID_ATTEMPTS):
            weaklog_id = self.generate_id(now)
            path = raw_dir / f"{weaklog_id}.md"
            header = {
                "weaklog_id": weaklog_id,
                "created": created_at,
                "cooldown_days": cooldown_days,
                "status": EntryStatus.RAW.value,
            }
            try:
                with open(path, "x", encoding="utf-8") as f:
                    f.write(frontmatter.render(header, content))
                break
            except FileExistsError:
                logger.debug("Raw log %s appeared concurrently, trying next id", path)
            except OSError as e:
                logger.error("Failed to create raw log %s: %s", path, e)
                raise StoreError(f"Failed to create raw log: {e}",
                                 user_message="Failed to save the entry.") from e
        else:
            raise IdGenerationExhausted(
                f"Failed to create a raw log after {MAX_ID_ATTEMPTS} attempts",
                user_message="Could not allocate an entry ID. Please try again.",
            )

        logger.info("Created raw log: %s", path)
        return Entry(
            id=weaklog_id,
            content=content,
            createdAt=created_at,
            cooldownDays=cooldown_days,
            status=EntryStatus.RAW,
            path=str(path),
        )

    def read(self, entry: EntryRef) -> Optional[Entry]:
        """
        Parse a document into an Entry.

        Returns None (with a warning) when the document is missing, has no
        header, or lacks a required field. Callers treat None as "needs the
        user's attention", not as an error.
        """
        path = self._path_of(entry)
        try:
            header, body = frontmatter.read(path)
        except FileNotFoundError:
            logger.warning("Entry document not found: %s", path)
            return None
        except (OSError, FrontmatterError) as e:
            logger.warning("Failed to read %s: %s", path, e)
            return None

        if header is None:
            logger.warning("No frontmatter in %s", path)
            return None
        if not header.get("weaklog_id") or not header.get("created") or not header.get("status"):
            logger.warning("Missing required frontmatter fields in %s", path)
            return None

        try:
            return Entry(
                id=str(header["weaklog_id"]),
                content=body.strip(),
                createdAt=str(header["created"]),
                cooldownDays=int(header.get("cooldown_days") or 7),
                status=EntryStatus(header["status"]),
                triageResult=self._decode(header.get("triage_result"), TriageResult, path),
                synthesisGuide=self._decode(header.get("synthesis_guide"), SynthesisGuide, path),
                publishedAt=header.get("published_at"),
                path=str(path),
            )
        except (ValueError, ValidationError) as e:
            logger.warning("Invalid frontmatter in %s: %s", path, e)
            return None

    @staticmethod
    def _decode(raw: Any, model, path: Path):
        """Embedded JSON strings; a corrupt value is dropped, not fatal."""
        if not raw:
            return None
        try:
            if isinstance(raw, str):
                return model.model_validate_json(raw)
            return model.model_validate(raw)
        except ValidationError:
            logger.warning("Failed to parse %s in %s", model.__name__, path)
            return None

    def update_metadata(self, entry: EntryRef, fields: Dict[str, Any]) -> None:
        """Merge ``fields`` into the header without touching the body.

        Pydantic models are stored as JSON strings.
        """
        path = self._path_of(entry)
        encoded = {}
        for key, value in fields.items():
            if isinstance(value, (TriageResult, SynthesisGuide)):
                value = value.to_json()
            elif isinstance(value, EntryStatus):
                value = value.value
            encoded[key] = value
        try:
            frontmatter.merge(path, encoded)
        except (OSError, FrontmatterError) as e:
            logger.error("Failed to update frontmatter for %s: %s", path, e)
            raise StoreError(f"Failed to update frontmatter: {e}",
                             user_message="Failed to update entry metadata.") from e
        logger.debug("Updated frontmatter for %s: %s", path, ", ".join(encoded))

    def write_body(self, entry: EntryRef, body: str) -> None:
        """Replace the body, keeping the header."""
        path = self._path_of(entry)
        try:
            header, _ = frontmatter.read(path)
            frontmatter.write(path, header or {}, body)
        except (OSError, FrontmatterError) as e:
            raise StoreError(f"Failed to write document: {e}",
                             user_message="Failed to write the document.") from e

    def list_entries(self, status: EntryStatus) -> List[Entry]:
        """Readable entries in ``status``'s folder, oldest id first.

        The archive is never included. Unreadable documents are skipped.
        """
        folder = self.stage_dir(status)
        if not folder.is_dir():
            return []
        entries = []
        for path in sorted(folder.glob("*.md")):
            entry = self.read(path)
            if entry is not None:
                entries.append(entry)
        return entries

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def ensure_destination_free(self, entry: EntryRef, target: EntryStatus) -> Path:
        """
        Where ``transition(entry, target)`` would put the document.

        Call before any write that must not happen if the move cannot.

        Raises:
            TransitionCollisionError: another document already has that name
        """
        source = self._path_of(entry)
        dest_dir = self.stage_dir(target)
        dest = dest_dir / source.name
        if source.parent.resolve() != dest_dir.resolve() and dest.exists():
            raise TransitionCollisionError(
                f"Target file already exists: {dest}",
                user_message=f"Cannot move {source.stem}: a document with the same "
                             f"name already exists in {dest_dir.name}.",
            )
        return dest

    def transition(self, entry: EntryRef, target: EntryStatus) -> Entry:
        """
        Move an entry to ``target``: status header first, then the file.

        Raises:
            TransitionCollisionError: the destination already holds a
                document with this name (nothing was changed)
            RelocationError: the header now says ``target`` but the file
                could not be moved. Do not retry blindly.
        """
        target = EntryStatus(target)
        source = self._path_of(entry)
        dest = self.ensure_destination_free(source, target)
        dest_dir = dest.parent
        same_place = source.parent.resolve() == dest_dir.resolve()

        self.update_metadata(source, {"status": target})

        if not same_place:
            try:
                dest_dir.mkdir(parents=True, exist_ok=True)
                if dest.exists():
                    raise FileExistsError(f"Target file already exists: {dest}")
                source.rename(dest)
            except OSError as e:
                logger.error(
                    "Status of %s set to %s but the move to %s failed: %s",
                    source, target.value, dest, e,
                )
                raise RelocationError(
                    f"Failed to move file after status update: {e}",
                    source=str(source),
                    destination=str(dest),
                    user_message=f"{source.stem} was marked {target.value} but could not be "
                                 f"moved to {dest_dir.name}. Please move it manually.",
                ) from e
            logger.info("Moved %s to %s", source, dest)

        moved = self.read(dest)
        if moved is None:
            raise StoreError(f"Moved document is unreadable: {dest}",
                             user_message=f"{source.stem} was moved but could not be read back.")
        return moved

    def archive_target(self, entry: EntryRef) -> Path:
        """
        First free archive path for ``entry``, creating the archive folder.

        Name collisions get a ``_1``, ``_2`` ... suffix. Nothing is moved.

        Raises:
            ArchiveError: the folder could not be created, or no free name
                after 100 attempts
        """
        source = self._path_of(entry)
        try:
            self.archive_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchiveError(f"Failed to create archive folder: {e}",
                               user_message="Failed to archive the entry.") from e

        name = source.stem
        for attempt in range(MAX_ARCHIVE_ATTEMPTS):
            target = self.archive_dir / f"{name}.md"
            if not target.exists():
                return target
            name = f"{source.stem}_{attempt + 1}"

        raise ArchiveError(
            f"Failed to find unique archive name after {MAX_ARCHIVE_ATTEMPTS} attempts",
            user_message="Failed to archive the entry.",
        )

    def archive(self, entry: EntryRef, target: Optional[Path] = None) -> Path:
        """
        Move a document into the archive instead of deleting it.

        ``target`` defaults to ``archive_target(entry)``.

        Raises:
            ArchiveError: no archive path was available, or the move failed
        """
        source = self._path_of(entry)
        if target is None:
            target = self.archive_target(source)
        try:
            source.rename(target)
        except OSError as e:
            raise ArchiveError(f"Failed to archive file: {e}",
                               user_message="Failed to archive the entry.") from e
        logger.info("Archived %s to %s", source, target)
        return target

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _path_of(self, entry: EntryRef) -> Path:
        if isinstance(entry, Entry):
            if not entry.path:
                raise StoreError(f"Entry {entry.id} has no document path")
            return Path(entry.path)
        return Path(entry)
