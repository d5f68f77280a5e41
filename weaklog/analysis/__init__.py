"""
Weaklog Analysis

AI-driven evaluation (triage) and guided synthesis of entries.
"""

from .triage import TriageEvaluator
from .synthesis import SynthesisGuideGenerator, get_fallback_questions

__all__ = [
    "TriageEvaluator",
    "SynthesisGuideGenerator",
    "get_fallback_questions",
]
