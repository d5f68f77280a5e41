"""
Synthesis Document Template

Renders the composed document written when an entry moves to the
synthesized stage: original entry, core question, answered questions and
an editable draft section.
"""

from typing import List, Optional

from .entry import QuestionAnswer


SYNTHESIS_TEMPLATE = """# Synthesis Draft

## Original Entry

{original}

## Core Question

> {core_question}

## Synthesis Questions & Answers

{qa_block}
---

## Draft Content (Edit Below)

{draft_block}"""


SUGGESTED_DRAFT_BLOCK = """### AI Suggested Draft

{draft}

---

### Your Edited Version

*Edit the AI suggestion above or write your own version below...*
"""


EMPTY_DRAFT_BLOCK = """*Transform the above reflections into your final creative work...*

<!-- Start writing your final draft here -->
"""


def _quote(text: str) -> str:
    """Markdown blockquote, one '> ' per line"""
    return "\n".join(f"> {line}" if line else ">" for line in text.strip().split("\n"))


def _format_qa(qa_list: List[QuestionAnswer]) -> str:
    blocks = []
    for i, qa in enumerate(qa_list, 1):
        blocks.append(f"### Q{i}: {qa.question}\n\n{qa.answer.strip()}\n")
    return "\n".join(blocks)


def render_synthesis_document(
    original_content: str,
    core_question: str,
    qa_list: List[QuestionAnswer],
    suggested_draft: Optional[str] = None,
) -> str:
    """Render the synthesized document body (no metadata header)."""
    if suggested_draft and suggested_draft.strip():
        draft_block = SUGGESTED_DRAFT_BLOCK.format(draft=suggested_draft.strip())
    else:
        draft_block = EMPTY_DRAFT_BLOCK

    return SYNTHESIS_TEMPLATE.format(
        original=_quote(original_content),
        core_question=core_question,
        qa_block=_format_qa(qa_list),
        draft_block=draft_block,
    )
