"""Shared fixtures for the weaklog test suite."""

import json
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

FIXED_NOW = datetime(2026, 1, 27, 9, 0, tzinfo=timezone.utc)

SAMPLE_CONTENT = "I keep avoiding hard conversations at work because I fear conflict"


def triage_json(*passes, core_question="Why do I avoid conflict?", score=None):
    """Model-style triage response; ``passes`` maps onto the four checks in order."""
    names = ["hasSpecifics", "canBeCorePhrase", "isTransferable", "isNonHarmful"]
    passes = list(passes) or [True] * 4
    data = {
        "checks": {name: {"pass": p, "reason": f"{name} reason"} for name, p in zip(names, passes)},
        "coreQuestion": core_question,
    }
    if score is not None:
        data["score"] = score
        data["recommendation"] = "adopt"
    return json.dumps(data)


def synthesis_json(questions, tone="reflective"):
    return json.dumps({"questions": questions, "suggestedTone": tone})


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def store(tmp_path, clock):
    from weaklog.workflow.entry_store import EntryStore
    s = EntryStore(tmp_path / "Weaklog", clock=clock)
    s.ensure_folder_structure()
    return s


@pytest.fixture
def scheduler(tmp_path):
    from weaklog.workflow.cooldown import CooldownScheduler
    return CooldownScheduler(tmp_path / "Weaklog")


@pytest.fixture
def mock_client():
    client = Mock()
    client.provider_name = "anthropic"
    client.get_model.return_value = "claude-sonnet-4-20250514"
    return client


@pytest.fixture
def notifier():
    from weaklog.workflow.notifier import RecordingNotifier
    return RecordingNotifier()


@pytest.fixture
def orchestrator(store, scheduler, mock_client, notifier):
    from weaklog.workflow.orchestrator import WeaklogOrchestrator
    orch = WeaklogOrchestrator(store, scheduler, mock_client, notifier=notifier)
    yield orch
    orch.shutdown()
