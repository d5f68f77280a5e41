"""
Workflow Orchestrator

Drives an entry through raw -> cooling -> triaged -> synthesized -> published,
with reject (archive) as the terminal side exit after triage.

Every public command reports its outcome through exactly one notification.
On failure the detailed error is logged (redacted), the user gets one
notification with the human-readable message, and the exception is
re-raised for programmatic callers.

Long-running commands can be run through :meth:`submit`, which returns a
``Future``. A caller that stops caring (a closed dialog) simply drops the
future: the backend call is not interrupted, its result is just never read.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, Union

from ..analysis import SynthesisGuideGenerator, TriageEvaluator
from ..common.config import WeaklogConfig
from ..common.errors import (
    ArchiveError,
    EmptyInputError,
    InvalidInputError,
    RelocationError,
    StageError,
    StoreError,
    WeaklogError,
)
from ..common.language import resolve_language
from ..common.llm_client import LLMClient
from ..common.llm_utils import redact_secrets
from ..common.schemas import (
    CooldownEntry,
    Entry,
    EntryStatus,
    QuestionAnswer,
    SynthesisGuide,
    TriageResult,
    iso_now,
    render_synthesis_document,
)
from .cooldown import CooldownScheduler, status_message
from .entry_store import EntryRef, EntryStore
from .notifier import Level, LoggingNotifier, Notifier

logger = logging.getLogger("weaklog.workflow.orchestrator")

MIN_CONTENT_LENGTH = 10
MIN_COOLDOWN_DAYS = 1
MAX_COOLDOWN_DAYS = 365

Answers = Union[Mapping[int, str], Sequence[Optional[str]]]


class WeaklogOrchestrator:
    """Stage transitions for weaklog entries."""

    def __init__(
        self,
        store: EntryStore,
        scheduler: CooldownScheduler,
        client: LLMClient,
        notifier: Optional[Notifier] = None,
        evaluator: Optional[TriageEvaluator] = None,
        generator: Optional[SynthesisGuideGenerator] = None,
        response_language: str = "english",
        default_cooldown_days: int = 7,
    ):
        self.store = store
        self.scheduler = scheduler
        self.client = client
        self.notifier = notifier or LoggingNotifier()
        self.evaluator = evaluator or TriageEvaluator(client)
        self.generator = generator or SynthesisGuideGenerator(client)
        self.response_language = response_language
        self.default_cooldown_days = default_cooldown_days
        self._executor: Optional[ThreadPoolExecutor] = None

    @classmethod
    def from_config(
        cls,
        config: WeaklogConfig,
        notifier: Optional[Notifier] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "WeaklogOrchestrator":
        """Wire every component from explicit configuration values."""
        client = LLMClient.from_config(config.provider_config(), sleep=sleep)
        folder = config.workflow.folder_path
        return cls(
            store=EntryStore(folder),
            scheduler=CooldownScheduler(folder),
            client=client,
            notifier=notifier,
            evaluator=TriageEvaluator(
                client,
                temperature=config.llm.triage_temperature,
                timeout_ms=config.llm.triage_timeout_ms,
            ),
            generator=SynthesisGuideGenerator(
                client,
                temperature=config.llm.synthesis_temperature,
                timeout_ms=config.llm.synthesis_timeout_ms,
            ),
            response_language=config.workflow.response_language,
            default_cooldown_days=config.workflow.default_cooldown_days,
        )

    # ------------------------------------------------------------------
    # Command plumbing
    # ------------------------------------------------------------------

    def _run(self, failure_prefix: str, action: Callable[[], Tuple[str, Any]]) -> Any:
        """Run ``action`` and emit exactly one notification for it."""
        try:
            message, result = action()
        except (EmptyInputError, InvalidInputError, StageError) as e:
            logger.warning("%s: %s", failure_prefix, redact_secrets(str(e)))
            self.notifier.notify(redact_secrets(e.user_message), Level.WARNING)
            raise
        except WeaklogError as e:
            logger.error("%s: %s", failure_prefix, redact_secrets(str(e)))
            self.notifier.notify(f"{failure_prefix}: {redact_secrets(e.user_message)}", Level.ERROR)
            raise
        except Exception as e:
            logger.error("%s: %s", failure_prefix, redact_secrets(repr(e)))
            self.notifier.notify(f"{failure_prefix}: {redact_secrets(str(e))}", Level.ERROR)
            raise
        self.notifier.notify(message, Level.SUCCESS)
        return result

    def _read(self, ref: EntryRef) -> Entry:
        entry = self.store.read(ref)
        if entry is None:
            path = ref.path if isinstance(ref, Entry) else ref
            raise StoreError(f"Failed to read entry: {path}",
                             user_message="Failed to read entry. Check its frontmatter.")
        return entry

    def _require_stage(self, entry: Entry, status: EntryStatus, command: str) -> None:
        if not self.store.in_stage(entry, status):
            folder = self.store.stage_dir(status).name
            raise StageError(
                f"{command} requires {entry.id} to be in {folder}, found at {entry.path}",
                user_message=f"{command} only works on entries in {folder}.",
            )

    @staticmethod
    def _require_triage(entry: Entry, override: Optional[TriageResult]) -> TriageResult:
        result = override or entry.triageResult
        if result is None:
            raise StageError(f"Entry {entry.id} has no triage result",
                             user_message="Entry has no triage result. Please triage first.")
        return result

    def _language(self, content: str):
        return resolve_language(self.response_language, content)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def ensure_folder_structure(self) -> None:
        """Create the stage folders. Notifies only on failure."""
        try:
            self.store.ensure_folder_structure()
        except OSError as e:
            logger.error("Failed to create weaklog folders under %s: %s", self.store.root, e)
            self.notifier.notify(f"Failed to create weaklog folder: {self.store.root} ({e})",
                                 Level.ERROR)
            raise StoreError(f"Failed to create weaklog folders: {e}") from e
        logger.debug("Folder structure ready under %s", self.store.root)

    def list_entries(self, status: EntryStatus) -> List[Entry]:
        return self.store.list_entries(status)

    # ------------------------------------------------------------------
    # raw -> cooling
    # ------------------------------------------------------------------

    def create(self, content: str, cooldown_days: Optional[int] = None) -> Entry:
        """
        Capture a raw entry, move it to cooling and start its cooldown.

        Raises:
            EmptyInputError: content is blank
            InvalidInputError: content shorter than 10 characters or
                cooldown_days outside 1-365
        """
        days = self.default_cooldown_days if cooldown_days is None else cooldown_days

        def action():
            text = (content or "").strip()
            if not text:
                raise EmptyInputError("Content cannot be empty")
            if len(text) < MIN_CONTENT_LENGTH:
                raise InvalidInputError("Content must be at least 10 characters")
            if not isinstance(days, int) or not MIN_COOLDOWN_DAYS <= days <= MAX_COOLDOWN_DAYS:
                raise InvalidInputError("Cooldown days must be between 1 and 365")

            raw = self.store.create(content, days)
            cooling = self.store.transition(raw, EntryStatus.COOLING)
            self.scheduler.register(cooling, days, file_path=self.store.relative(Path(cooling.path)))
            logger.info("Raw log workflow complete: %s", cooling.id)
            return f"Raw log created: {cooling.id}", cooling

        return self._run("Failed to create log", action)

    def check_readiness(self, now: Optional[datetime] = None) -> List[CooldownEntry]:
        """Read-only: which cooling entries have finished their cooldown."""
        def action():
            ready = self.scheduler.get_ready(now)
            return status_message(ready), ready

        return self._run("Failed to check cooldown status", action)

    # ------------------------------------------------------------------
    # Triage and decision
    # ------------------------------------------------------------------

    def triage(self, ref: EntryRef) -> Entry:
        """
        Evaluate a cooling entry and record the result in its metadata.

        The entry stays in cooling until adopt/reject. An entry that already
        holds a real (non-fallback) result keeps it; only a fallback result
        is evaluated again.
        """
        def action():
            entry = self._read(ref)
            self._require_stage(entry, EntryStatus.COOLING, "Triage")

            if entry.triageResult is not None and not entry.triageResult.isFallback:
                logger.info("Entry %s already triaged, reusing result", entry.id)
                result = entry.triageResult
            else:
                result = self.evaluator.evaluate(entry.content, self._language(entry.content))
                self.store.update_metadata(entry, {"triage_result": result})
                entry = entry.model_copy(update={"triageResult": result})

            return (
                f"Triage complete for {entry.id}: {result.score}/4, "
                f"recommendation: {result.recommendation.value}",
                entry,
            )

        return self._run("Triage failed", action)

    def adopt(self, ref: EntryRef, triage_result: Optional[TriageResult] = None) -> Entry:
        def action():
            entry = self._read(ref)
            result = self._require_triage(entry, triage_result)
            self._require_stage(entry, EntryStatus.COOLING, "Adopt")

            self.store.ensure_destination_free(entry, EntryStatus.TRIAGED)
            self.store.update_metadata(entry, {"triage_result": result})
            triaged = self.store.transition(entry, EntryStatus.TRIAGED)
            self.scheduler.unregister(entry.id)
            return f"Entry adopted: {entry.id}", triaged

        return self._run("Failed to adopt", action)

    def reject(self, ref: EntryRef, triage_result: Optional[TriageResult] = None) -> Path:
        """Archive (never delete) the entry with its triage result."""
        def action():
            entry = self._read(ref)
            result = self._require_triage(entry, triage_result)
            self._require_stage(entry, EntryStatus.COOLING, "Reject")

            target = self.store.archive_target(entry)
            self.store.update_metadata(entry, {
                "triage_result": result,
                "status": EntryStatus.REJECTED,
            })
            try:
                archived = self.store.archive(entry, target)
            except ArchiveError as e:
                raise RelocationError(
                    f"Entry marked rejected but not archived: {e}",
                    source=entry.path,
                    destination=str(target),
                    user_message=f"{entry.id} was marked rejected but could not be "
                                 "moved to the archive. Please move it manually.",
                ) from e
            self.scheduler.unregister(entry.id)
            return f"Entry rejected and archived: {entry.id}", archived

        return self._run("Failed to reject", action)

    def review_later(self, ref: EntryRef) -> None:
        """No state change; the entry stays ready in cooling."""
        def action():
            logger.info("Review later: %s", ref.id if isinstance(ref, Entry) else ref)
            return "Entry remains in cooling for later review", None

        return self._run("Failed to defer review", action)

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def synthesize(self, ref: EntryRef) -> SynthesisGuide:
        """Generate deepening questions for a triaged entry (no state change)."""
        def action():
            entry = self._read(ref)
            result = self._require_triage(entry, None)
            self._require_stage(entry, EntryStatus.TRIAGED, "Synthesize")

            guide = self.generator.generate(entry.content, result, self._language(entry.content))
            return f"Generated {len(guide.questions)} synthesis questions", guide

        return self._run("Synthesis failed", action)

    def suggest_draft(self, ref: EntryRef, guide: SynthesisGuide, answers: Answers) -> str:
        def action():
            qa_list = answered_pairs(guide, answers)
            if not qa_list:
                raise InvalidInputError("Please answer at least one question first")
            entry = self._read(ref)
            result = self._require_triage(entry, None)

            draft = self.generator.suggest_draft(
                entry.content, result, qa_list, self._language(entry.content)
            )
            return "AI draft suggestion generated", draft

        return self._run("Failed to generate AI suggestion", action)

    def generate_draft(self, ref: EntryRef, guide: SynthesisGuide, answers: Answers,
                       suggested_draft: Optional[str] = None) -> Entry:
        """
        Write the composed synthesis document and move it to synthesized.

        The body is replaced by the draft template (original entry quoted,
        core question, answered questions, editable draft section).
        """
        def action():
            qa_list = answered_pairs(guide, answers)
            if not qa_list:
                raise InvalidInputError("Please answer at least one question")
            entry = self._read(ref)
            result = self._require_triage(entry, None)
            self._require_stage(entry, EntryStatus.TRIAGED, "Generate draft")
            self.store.ensure_destination_free(entry, EntryStatus.SYNTHESIZED)

            document = render_synthesis_document(
                entry.content, result.coreQuestion, qa_list, suggested_draft
            )
            self.store.write_body(entry, document)
            self.store.update_metadata(entry, {"synthesis_guide": guide})
            synthesized = self.store.transition(entry, EntryStatus.SYNTHESIZED)
            logger.info("Synthesis draft generated with %d answers: %s", len(qa_list), entry.id)
            return f"Synthesis draft generated: {entry.id}", synthesized

        return self._run("Failed to generate draft", action)

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(self, ref: EntryRef) -> Entry:
        def action():
            entry = self._read(ref)
            self._require_stage(entry, EntryStatus.SYNTHESIZED, "Publish")
            self.store.ensure_destination_free(entry, EntryStatus.PUBLISHED)

            self.store.update_metadata(entry, {"published_at": iso_now()})
            published = self.store.transition(entry, EntryStatus.PUBLISHED)
            return f"Entry published: {entry.id}", published

        return self._run("Failed to publish", action)

    # ------------------------------------------------------------------
    # Settings surface
    # ------------------------------------------------------------------

    def test_connection(self) -> bool:
        def action():
            ok = self.client.test_connection()
            return (
                f"Connection successful ({self.client.provider_name}: {self.client.get_model()})",
                ok,
            )

        return self._run("Connection test failed", action)

    def available_models(self) -> List[str]:
        def action():
            models = self.client.get_available_models()
            return f"{len(models)} models available for {self.client.provider_name}", models

        return self._run("Failed to list models", action)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def validate_and_clean(self) -> int:
        """
        Reconcile the cooldown index with the documents.

        Prunes stale index records, then re-registers cooling documents the
        index has lost track of. Returns the number of records pruned.
        """
        def action():
            removed = self.scheduler.validate_and_clean()
            tracked = {e.weaklogId for e in self.scheduler.all_entries()}
            restored = 0
            for entry in self.store.list_entries(EntryStatus.COOLING):
                if entry.id in tracked:
                    continue
                if entry.status not in (EntryStatus.COOLING, EntryStatus.READY_FOR_TRIAGE):
                    continue
                self.scheduler.register(entry, entry.cooldownDays,
                                        file_path=self.store.relative(Path(entry.path)))
                restored += 1
            if restored:
                logger.info("Re-registered %d cooling entries missing from the index", restored)
            return f"Cooldown index cleaned: {removed} removed, {restored} restored", removed

        return self._run("Failed to clean cooldown data", action)

    # ------------------------------------------------------------------
    # Result channel
    # ------------------------------------------------------------------

    def submit(self, command: Callable[..., Any], *args, **kwargs) -> "Future[Any]":
        """
        Run a command on the background worker and return its Future.

        Commands run one at a time in submission order. Dropping the
        Future does not cancel a provider call already in flight.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="weaklog-cmd")
        return self._executor.submit(command, *args, **kwargs)

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None


def answered_pairs(guide: SynthesisGuide, answers: Answers) -> List[QuestionAnswer]:
    """Question/answer pairs for the answered questions, in question order.

    ``answers`` is either a mapping of question index to answer or a
    sequence aligned with ``guide.questions``.
    """
    if isinstance(answers, Mapping):
        lookup = answers
    else:
        lookup = dict(enumerate(answers))

    pairs = []
    for i, question in enumerate(guide.questions):
        answer = lookup.get(i)
        if answer and answer.strip():
            pairs.append(QuestionAnswer(question=question, answer=answer))
    return pairs
