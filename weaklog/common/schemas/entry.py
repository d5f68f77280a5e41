"""
Weaklog Entry Schema

Core principle: the markdown document is the authoritative copy of an entry.
The cooldown index is a derived shadow that may be rebuilt from documents.
Scores and recommendations are always derived from checks, never stored
independently.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from enum import Enum


# ============================================================================
# Enums
# ============================================================================

class EntryStatus(str, Enum):
    """Stage an entry occupies"""
    RAW = "raw"
    COOLING = "cooling"
    READY_FOR_TRIAGE = "ready-for-triage"
    TRIAGED = "triaged"
    SYNTHESIZED = "synthesized"
    PUBLISHED = "published"
    REJECTED = "rejected"  # archived, terminal


class Recommendation(str, Enum):
    ADOPT = "adopt"
    REVIEW = "review"
    REJECT = "reject"


class Tone(str, Enum):
    """Suggested tone for the synthesized work"""
    REFLECTIVE = "reflective"
    ANALYTICAL = "analytical"
    EXPLORATORY = "exploratory"


class ResponseLanguage(str, Enum):
    ENGLISH = "english"
    JAPANESE = "japanese"


CHECK_NAMES = ("hasSpecifics", "canBeCorePhrase", "isTransferable", "isNonHarmful")

CORE_QUESTION_MAX = 40
MIN_QUESTIONS = 3
MAX_QUESTIONS = 5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_now() -> str:
    return utc_now().isoformat()


def parse_iso(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def recommendation_for(score: int) -> Recommendation:
    """4 = adopt, 2-3 = review, 0-1 = reject"""
    if score == 4:
        return Recommendation.ADOPT
    if score >= 2:
        return Recommendation.REVIEW
    return Recommendation.REJECT


# ============================================================================
# Triage
# ============================================================================

class CheckResult(BaseModel):
    """Result of a single triage criterion"""
    passed: bool = Field(default=False, alias="pass")
    reason: str = Field(default="No reason provided", description="~30 chars, human-readable")

    model_config = {"populate_by_name": True}


class TriageChecks(BaseModel):
    """The four fixed criteria"""
    hasSpecifics: CheckResult = Field(default_factory=CheckResult)
    canBeCorePhrase: CheckResult = Field(default_factory=CheckResult)
    isTransferable: CheckResult = Field(default_factory=CheckResult)
    isNonHarmful: CheckResult = Field(default_factory=CheckResult)

    def passed_count(self) -> int:
        return sum(1 for name in CHECK_NAMES if getattr(self, name).passed)


class TriageResult(BaseModel):
    """
    AI triage evaluation.

    CRITICAL RULE: score and recommendation are recomputed from checks on
    every construction, so a model-reported (or hand-edited) score can never
    disagree with the checks.
    """
    checks: TriageChecks
    score: int = 0
    recommendation: Recommendation = Recommendation.REJECT
    coreQuestion: str = ""
    timestamp: str = Field(default_factory=iso_now)
    # Set only on the conservative result used when model output is unusable
    isFallback: bool = False

    @model_validator(mode="after")
    def _derive_score(self) -> "TriageResult":
        score = self.checks.passed_count()
        self.score = score
        if self.isFallback:
            # Never auto-reject on a failed analysis; the user decides
            self.recommendation = Recommendation.REVIEW
        else:
            self.recommendation = recommendation_for(score)
        return self

    @field_validator("coreQuestion")
    @classmethod
    def _truncate_core_question(cls, v: str) -> str:
        return v[:CORE_QUESTION_MAX]

    @classmethod
    def from_checks(cls, checks: TriageChecks, core_question: str) -> "TriageResult":
        return cls(checks=checks, coreQuestion=core_question)

    @classmethod
    def fallback(cls, checks: TriageChecks, core_question: str) -> "TriageResult":
        return cls(checks=checks, coreQuestion=core_question, isFallback=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# ============================================================================
# Synthesis
# ============================================================================

class SynthesisGuide(BaseModel):
    """Deepening questions for the synthesis step"""
    questions: List[str] = Field(..., min_length=MIN_QUESTIONS, max_length=MAX_QUESTIONS)
    suggestedTone: Tone = Tone.REFLECTIVE
    timestamp: str = Field(default_factory=iso_now)

    @field_validator("questions")
    @classmethod
    def _non_empty(cls, v: List[str]) -> List[str]:
        if any(not q.strip() for q in v):
            raise ValueError("questions must be non-empty strings")
        return v

    def to_json(self) -> str:
        return self.model_dump_json()


class QuestionAnswer(BaseModel):
    question: str
    answer: str


# ============================================================================
# Entry
# ============================================================================

class Entry(BaseModel):
    """
    A weaklog entry as read from its document.

    ``path`` is where the document currently lives; it is not persisted in
    the header.
    """
    id: str = Field(..., description="YYYY-MM-DD_NNN")
    content: str
    createdAt: str
    cooldownDays: int = Field(default=7, ge=1, le=365)
    status: EntryStatus
    triageResult: Optional[TriageResult] = None
    synthesisGuide: Optional[SynthesisGuide] = None
    publishedAt: Optional[str] = None
    path: Optional[str] = None


# ============================================================================
# Cooldown index
# ============================================================================

class CooldownEntry(BaseModel):
    """One entry awaiting time-based readiness (persisted)"""
    weaklogId: str
    filePath: str
    createdAt: str
    cooldownDays: int
    readyAt: str

    @classmethod
    def register(cls, weaklog_id: str, file_path: str, created_at: datetime,
                 cooldown_days: int) -> "CooldownEntry":
        """readyAt is computed once, here."""
        return cls(
            weaklogId=weaklog_id,
            filePath=file_path,
            createdAt=created_at.isoformat(),
            cooldownDays=cooldown_days,
            readyAt=(created_at + timedelta(days=cooldown_days)).isoformat(),
        )

    def is_ready(self, now: Optional[datetime] = None) -> bool:
        return parse_iso(self.readyAt) <= (now or utc_now())


class CooldownData(BaseModel):
    """The persisted cooldown index"""
    entries: List[CooldownEntry] = Field(default_factory=list)
    lastChecked: str = Field(default_factory=iso_now)
