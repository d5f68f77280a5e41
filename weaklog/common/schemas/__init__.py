"""
Weaklog Schemas

Entry, triage and synthesis models plus the cooldown index.
"""

from .entry import (
    Entry,
    EntryStatus,
    CheckResult,
    TriageChecks,
    TriageResult,
    Recommendation,
    SynthesisGuide,
    Tone,
    QuestionAnswer,
    ResponseLanguage,
    CooldownEntry,
    CooldownData,
    CHECK_NAMES,
    CORE_QUESTION_MAX,
    MIN_QUESTIONS,
    MAX_QUESTIONS,
    recommendation_for,
    parse_iso,
    utc_now,
    iso_now,
)
from .templates import render_synthesis_document, SYNTHESIS_TEMPLATE

__all__ = [
    "Entry",
    "EntryStatus",
    "CheckResult",
    "TriageChecks",
    "TriageResult",
    "Recommendation",
    "SynthesisGuide",
    "Tone",
    "QuestionAnswer",
    "ResponseLanguage",
    "CooldownEntry",
    "CooldownData",
    "CHECK_NAMES",
    "CORE_QUESTION_MAX",
    "MIN_QUESTIONS",
    "MAX_QUESTIONS",
    "recommendation_for",
    "parse_iso",
    "utc_now",
    "iso_now",
    "render_synthesis_document",
    "SYNTHESIS_TEMPLATE",
]
