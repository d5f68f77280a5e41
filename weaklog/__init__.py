"""
Weaklog

Moves a personal text entry through a five-stage workflow:
Raw -> Cooling -> Triage -> Synthesis -> Published

Philosophy:
- The markdown document is the single source of truth for an entry
- The cooldown index is derived and can always be rebuilt or pruned
- AI output is never trusted blindly: scores are recomputed, malformed
  responses degrade to deterministic fallbacks
- Reject archives, it never deletes

Usage:
    from weaklog.common import load_config, LLMClient
    from weaklog.analysis import TriageEvaluator, SynthesisGuideGenerator
    from weaklog.workflow import EntryStore, CooldownScheduler, WeaklogOrchestrator
"""

__version__ = "0.1.0"
