"""
Triage Evaluator

Scores an entry against four fixed criteria:
1. hasSpecifics: concrete situations vs. abstract feelings
2. canBeCorePhrase: condensable to a <40 char question
3. isTransferable: universal relevance vs. overly personal
4. isNonHarmful: constructive and safe for readers

Score and recommendation are recomputed locally; any model-reported values
are ignored. Unusable model output never escapes this module: it becomes a
conservative "review" result instead.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from ..common.errors import EmptyInputError, ParseError
from ..common.llm_client import LLMClient
from ..common.llm_utils import extract_json_object
from ..common.providers import CallOptions
from ..common.schemas import (
    CheckResult,
    ResponseLanguage,
    TriageChecks,
    TriageResult,
    CHECK_NAMES,
)

logger = logging.getLogger("weaklog.analysis.triage")


TRIAGE_PROMPT = """You are an objective evaluator for a creative writing project.
Your task is to evaluate raw journal entries to determine if they have potential to be transformed into universal, transferable creative works.

Evaluate the entry against these 4 criteria:

1. **HAS_SPECIFICS**: Does it contain concrete situations, experiences, or observations (not just abstract feelings)?
   - Pass: Specific events, moments, scenarios
   - Fail: Only vague emotions or generalizations

2. **CAN_BE_CORE_PHRASE**: Can it be condensed into one essential question (under 40 characters)?
   - Pass: Has a clear, focused theme
   - Fail: Too scattered or unfocused

3. **IS_TRANSFERABLE**: Is it universally relatable (not overly personal or niche)?
   - Pass: Others could relate to similar experiences
   - Fail: Too specific to author's unique circumstances

4. **IS_NON_HARMFUL**: Is it constructive and safe for readers (not harmful or triggering)?
   - Pass: Reflective, growth-oriented
   - Fail: Harmful, destructive, or excessively dark

For each criterion, provide:
- pass: true/false
- reason: Brief explanation (1-2 sentences, ~30 chars)

Also provide:
- coreQuestion: The essential question distilled from the entry (max 40 chars)
- score: Count of passed checks (0-4)
- recommendation: "adopt" (score=4), "review" (score=2-3), or "reject" (score=0-1)

Respond ONLY with JSON in this exact format:
{{
  "checks": {{
    "hasSpecifics": {{ "pass": true, "reason": "..." }},
    "canBeCorePhrase": {{ "pass": true, "reason": "..." }},
    "isTransferable": {{ "pass": true, "reason": "..." }},
    "isNonHarmful": {{ "pass": true, "reason": "..." }}
  }},
  "coreQuestion": "...",
  "score": 4,
  "recommendation": "adopt"
}}

{language_instruction}"""

LANGUAGE_INSTRUCTIONS = {
    ResponseLanguage.ENGLISH: "IMPORTANT: Respond in English.",
    ResponseLanguage.JAPANESE: (
        "IMPORTANT: Respond in Japanese (日本語). All explanations, reasons, "
        "and the core question must be in Japanese."
    ),
}

FALLBACK_REASON = "Analysis failed - please review"
FALLBACK_SAFE_REASON = "Assumed safe"


def build_system_prompt(language: ResponseLanguage) -> str:
    return TRIAGE_PROMPT.format(language_instruction=LANGUAGE_INSTRUCTIONS[language])


def fallback_result(content: str) -> TriageResult:
    """Conservative result used whenever model output is unusable.

    Three failed checks plus one assumed-safe check give score 1. The
    recommendation is forced to "review" so the user decides instead of an
    automatic reject.
    """
    checks = TriageChecks(
        hasSpecifics=CheckResult(passed=False, reason=FALLBACK_REASON),
        canBeCorePhrase=CheckResult(passed=False, reason=FALLBACK_REASON),
        isTransferable=CheckResult(passed=False, reason=FALLBACK_REASON),
        isNonHarmful=CheckResult(passed=True, reason=FALLBACK_SAFE_REASON),
    )
    return TriageResult.fallback(checks, content[:37] + "...")


def _check_from(raw: Any) -> CheckResult:
    """Only a literal JSON ``true`` passes."""
    if not isinstance(raw, dict):
        return CheckResult()
    reason = raw.get("reason")
    return CheckResult(
        passed=raw.get("pass") is True,
        reason=reason if isinstance(reason, str) else "No reason provided",
    )


class TriageEvaluator:
    """Evaluates weaklog entries for creative potential."""

    def __init__(
        self,
        client: LLMClient,
        temperature: float = 0.3,
        max_tokens: int = 1000,
        timeout_ms: int = 30000,
    ):
        self._client = client
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_ms = timeout_ms

    def evaluate(self, content: str,
                 language: ResponseLanguage = ResponseLanguage.ENGLISH) -> TriageResult:
        """
        Run one triage call against the configured provider.

        Args:
            content: Raw entry content
            language: Response language for reasons and the core question

        Returns:
            TriageResult (possibly the fallback result)

        Raises:
            EmptyInputError: content is blank
            ProviderError: the provider failed after its own retries
        """
        if not content or not content.strip():
            raise EmptyInputError("Content cannot be empty")

        logger.info("Starting triage analysis")
        response = self._client.call_api(
            build_system_prompt(language),
            f"Evaluate this journal entry:\n\n{content}",
            CallOptions(
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout_ms=self.timeout_ms,
            ),
        )

        result = self.parse_response(response, content)
        logger.info(
            "Triage complete - Score: %d/4, Recommendation: %s",
            result.score, result.recommendation.value,
        )
        return result

    def parse_response(self, raw: str, original_content: str) -> TriageResult:
        try:
            return self._parse(raw)
        except (ParseError, ValidationError) as e:
            logger.warning("Failed to parse triage response: %s", e)
            logger.debug("Raw triage response: %s", raw)
            logger.warning("Using fallback triage result")
            return fallback_result(original_content)

    def _parse(self, raw: str) -> TriageResult:
        data = extract_json_object(raw)

        raw_checks = data.get("checks")
        core_question: Optional[str] = data.get("coreQuestion")
        if not isinstance(raw_checks, dict) or not core_question \
                or not isinstance(core_question, str):
            raise ParseError("Invalid response structure: checks or coreQuestion missing")

        checks = TriageChecks(**{name: _check_from(raw_checks.get(name)) for name in CHECK_NAMES})
        return TriageResult.from_checks(checks, core_question)
