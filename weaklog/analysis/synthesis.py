"""
Synthesis Guide Generator

Generates 3-5 deepening questions that move a triaged entry from personal
experience toward a universal, transferable piece, and optionally suggests
a draft from the user's answers.

Focus of the questions:
- universal aspects over personal details
- "why/how" over "what"
- patterns and transferable insight
"""

import logging
import re
from typing import Any, List, Optional

from pydantic import ValidationError

from ..common.errors import EmptyInputError, ParseError, ProviderError
from ..common.llm_client import LLMClient
from ..common.llm_utils import extract_json_object
from ..common.providers import CallOptions
from ..common.schemas import (
    QuestionAnswer,
    ResponseLanguage,
    SynthesisGuide,
    Tone,
    TriageResult,
    MIN_QUESTIONS,
    MAX_QUESTIONS,
)

logger = logging.getLogger("weaklog.analysis.synthesis")


SYNTHESIS_PROMPT = """You are a creative writing coach helping transform personal journal entries into universal, transferable creative works.

Your task is to generate 3-5 deepening questions that help the author:
1. Move from personal experience to universal insight
2. Explore the "why" and "how", not just the "what"
3. Discover patterns and transferable wisdom
4. Transform weakness into creative strength

Guidelines for questions:
- Focus on universal aspects (not overly personal details)
- Encourage reflection on patterns and meanings
- Help extract transferable insights
- Prompt deeper "why/how" exploration
- Keep questions clear and thought-provoking

Generate exactly 3-5 questions. Do NOT number them.

Respond with JSON in this exact format:
{{
  "questions": [
    "Question 1 text here?",
    "Question 2 text here?",
    "Question 3 text here?"
  ],
  "suggestedTone": "reflective" or "analytical" or "exploratory"
}}

{language_instruction}"""


DRAFT_PROMPT = """You are a creative writing coach. The author has reflected on a personal journal entry by answering deepening questions.

Write a short draft (2-4 paragraphs) that turns the entry and the answers into a universal, transferable piece:
- Lead with the core question, not the personal anecdote
- Keep one concrete detail from the entry as an anchor
- Speak to readers who may face a similar situation
- Do not invent facts the author did not provide

Respond with the draft text only. No JSON, no headings, no preamble.

{language_instruction}"""


QUESTION_LANGUAGE = {
    ResponseLanguage.ENGLISH: "IMPORTANT: Generate ALL questions in English.",
    ResponseLanguage.JAPANESE: (
        "IMPORTANT: Generate ALL questions in Japanese (日本語). "
        "The suggestedTone value must stay in English."
    ),
}

DRAFT_LANGUAGE = {
    ResponseLanguage.ENGLISH: "IMPORTANT: Write the draft in English.",
    ResponseLanguage.JAPANESE: "IMPORTANT: Write the draft in Japanese (日本語).",
}


FALLBACK_QUESTIONS = {
    ResponseLanguage.ENGLISH: [
        "What universal pattern or truth does this experience reveal?",
        "How might others facing similar situations benefit from this insight?",
        "What question would you want to explore more deeply?",
        "If this were a lesson for your future self, what would it be?",
    ],
    ResponseLanguage.JAPANESE: [
        "この経験が示す普遍的なパターンや真実は何ですか？",
        "同じような状況に直面している他の人は、この洞察からどのような恩恵を受けるでしょうか？",
        "より深く探求したい問いは何ですか？",
        "もしこれが未来の自分へのレッスンだとしたら、それは何でしょうか？",
    ],
}

# "1. " or "- " at the start of a question
_LIST_MARKER = re.compile(r"^\d+\.\s*|^-\s*")


def get_fallback_questions(language: ResponseLanguage = ResponseLanguage.ENGLISH) -> List[str]:
    return list(FALLBACK_QUESTIONS[language])


def fallback_guide(language: ResponseLanguage) -> SynthesisGuide:
    return SynthesisGuide(questions=get_fallback_questions(language), suggestedTone=Tone.REFLECTIVE)


def _clean_question(q: Any) -> Optional[str]:
    if not isinstance(q, str):
        return None
    return _LIST_MARKER.sub("", q.strip(), count=1).strip()


def _validate_tone(tone: Any) -> Tone:
    if isinstance(tone, str):
        try:
            return Tone(tone.strip().lower())
        except ValueError:
            pass
    return Tone.REFLECTIVE


def build_user_prompt(content: str, triage: TriageResult) -> str:
    """Core question and passed signals are given as hints, not raw reasons."""
    parts = [
        "Generate synthesis questions for this entry:",
        "",
        f"Core Question: {triage.coreQuestion}",
        "",
        "Entry Content:",
        content,
        "",
        "Context from triage:",
    ]
    if triage.checks.hasSpecifics.passed:
        parts.append("- Contains concrete specifics")
    if triage.checks.isTransferable.passed:
        parts.append("- Has universal relevance")
    return "\n".join(parts)


def build_draft_prompt(content: str, triage: TriageResult, qa_list: List[QuestionAnswer]) -> str:
    parts = [
        f"Core Question: {triage.coreQuestion}",
        "",
        "Original Entry:",
        content,
        "",
        "Questions & Answers:",
    ]
    for i, qa in enumerate(qa_list, 1):
        parts.append(f"Q{i}: {qa.question}")
        parts.append(f"A{i}: {qa.answer}")
    return "\n".join(parts)


class SynthesisGuideGenerator:
    """Generates synthesis questions and draft suggestions for triaged entries."""

    def __init__(
        self,
        client: LLMClient,
        temperature: float = 0.7,
        max_tokens: int = 500,
        timeout_ms: int = 20000,
        draft_max_tokens: int = 1000,
    ):
        self._client = client
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_ms = timeout_ms
        self.draft_max_tokens = draft_max_tokens

    def generate(
        self,
        content: str,
        triage: TriageResult,
        language: ResponseLanguage = ResponseLanguage.ENGLISH,
    ) -> SynthesisGuide:
        """
        Generate deepening questions for an entry.

        Args:
            content: Raw entry content
            triage: The entry's triage result (context for the prompt)
            language: Response language for the questions

        Returns:
            SynthesisGuide with 3-5 questions (4 fallback questions if the
            model output is unusable)

        Raises:
            EmptyInputError: content is blank
            ProviderError: the provider failed after its own retries
        """
        if not content or not content.strip():
            raise EmptyInputError("Content cannot be empty")

        logger.info("Generating synthesis questions")
        response = self._client.call_api(
            SYNTHESIS_PROMPT.format(language_instruction=QUESTION_LANGUAGE[language]),
            build_user_prompt(content, triage),
            CallOptions(
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                timeout_ms=self.timeout_ms,
            ),
        )

        guide = self.parse_response(response, language)
        logger.info("Generated %d synthesis questions", len(guide.questions))
        return guide

    def parse_response(self, raw: str, language: ResponseLanguage) -> SynthesisGuide:
        try:
            return self._parse(raw)
        except (ParseError, ValidationError) as e:
            logger.warning("Failed to parse synthesis response: %s", e)
            logger.debug("Raw synthesis response: %s", raw)
            logger.warning("Using fallback synthesis questions")
            return fallback_guide(language)

    def _parse(self, raw: str) -> SynthesisGuide:
        data = extract_json_object(raw)

        questions = data.get("questions")
        if not isinstance(questions, list):
            raise ParseError("Invalid response structure: missing questions array")
        if not MIN_QUESTIONS <= len(questions) <= MAX_QUESTIONS:
            raise ParseError(f"Invalid question count: {len(questions)} (expected 3-5)")

        cleaned = [q for q in (_clean_question(q) for q in questions) if q]
        if len(cleaned) < MIN_QUESTIONS:
            raise ParseError("Not enough valid questions after cleaning")

        return SynthesisGuide(
            questions=cleaned[:MAX_QUESTIONS],
            suggestedTone=_validate_tone(data.get("suggestedTone")),
        )

    def suggest_draft(
        self,
        content: str,
        triage: TriageResult,
        qa_list: List[QuestionAnswer],
        language: ResponseLanguage = ResponseLanguage.ENGLISH,
    ) -> str:
        """Ask the provider for an editable draft built from the answers.

        The text is returned as-is apart from surrounding whitespace; it is
        a suggestion for the user to edit, not a typed structure.

        Raises:
            EmptyInputError: content is blank or no question was answered
            ProviderError: the provider failed or returned no text
        """
        if not content or not content.strip():
            raise EmptyInputError("Content cannot be empty")
        answered = [qa for qa in qa_list if qa.answer and qa.answer.strip()]
        if not answered:
            raise EmptyInputError("Please answer at least one question first")

        logger.info("Generating draft suggestion from %d answers", len(answered))
        response = self._client.call_api(
            DRAFT_PROMPT.format(language_instruction=DRAFT_LANGUAGE[language]),
            build_draft_prompt(content, triage, answered),
            CallOptions(
                temperature=self.temperature,
                max_tokens=self.draft_max_tokens,
                timeout_ms=self.timeout_ms,
            ),
        )
        draft = (response or "").strip()
        if not draft:
            raise ProviderError("Empty draft suggestion",
                                user_message="The AI returned an empty draft. Please try again.")
        return draft
