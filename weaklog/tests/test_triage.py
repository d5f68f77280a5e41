"""
Tests for the Triage Evaluator

The client is a Mock; only the parsing, fallback and score derivation are
under test here.
"""

import logging

import pytest

from weaklog.tests.conftest import SAMPLE_CONTENT, triage_json


@pytest.fixture
def evaluator(mock_client):
    from weaklog.analysis.triage import TriageEvaluator
    return TriageEvaluator(mock_client)


class TestEvaluate:
    def test_all_checks_pass(self, evaluator, mock_client):
        mock_client.call_api.return_value = triage_json()

        result = evaluator.evaluate(SAMPLE_CONTENT)

        assert result.score == 4
        assert result.recommendation.value == "adopt"
        assert result.coreQuestion == "Why do I avoid conflict?"
        assert result.checks.hasSpecifics.reason == "hasSpecifics reason"
        assert not result.isFallback

    def test_request_parameters(self, evaluator, mock_client):
        mock_client.call_api.return_value = triage_json()

        evaluator.evaluate(SAMPLE_CONTENT)

        system, user, options = mock_client.call_api.call_args.args
        assert "IS_NON_HARMFUL" in system
        assert "Respond in English" in system
        assert user == f"Evaluate this journal entry:\n\n{SAMPLE_CONTENT}"
        assert options.temperature == 0.3
        assert options.max_tokens == 1000
        assert options.timeout_ms == 30000

    def test_japanese_instruction(self, evaluator, mock_client):
        from weaklog.common.schemas import ResponseLanguage
        mock_client.call_api.return_value = triage_json()

        evaluator.evaluate(SAMPLE_CONTENT, ResponseLanguage.JAPANESE)

        system = mock_client.call_api.call_args.args[0]
        assert "Respond in Japanese" in system

    def test_model_score_is_ignored(self, evaluator, mock_client):
        mock_client.call_api.return_value = triage_json(True, False, True, False, score=4)

        result = evaluator.evaluate(SAMPLE_CONTENT)

        assert result.score == 2
        assert result.recommendation.value == "review"

    def test_fenced_response(self, evaluator, mock_client):
        mock_client.call_api.return_value = f"```json\n{triage_json(False, False, False, True)}\n```"

        result = evaluator.evaluate(SAMPLE_CONTENT)

        assert result.score == 1
        assert result.recommendation.value == "reject"
        assert not result.isFallback

    def test_non_boolean_pass_fails_the_check(self, evaluator, mock_client):
        mock_client.call_api.return_value = (
            '{"checks": {"hasSpecifics": {"pass": "true"}, "canBeCorePhrase": {"pass": 1},'
            ' "isTransferable": {"pass": true}, "isNonHarmful": {"pass": true}},'
            ' "coreQuestion": "Q?"}'
        )

        result = evaluator.evaluate(SAMPLE_CONTENT)

        assert result.score == 2
        assert result.checks.hasSpecifics.reason == "No reason provided"

    def test_missing_check_counts_as_failed(self, evaluator, mock_client):
        mock_client.call_api.return_value = (
            '{"checks": {"hasSpecifics": {"pass": true, "reason": "ok"}}, "coreQuestion": "Q?"}'
        )

        result = evaluator.evaluate(SAMPLE_CONTENT)

        assert result.score == 1
        assert result.recommendation.value == "reject"

    @pytest.mark.parametrize("content", ["", "   \n\t"])
    def test_empty_content(self, evaluator, mock_client, content):
        from weaklog.common.errors import EmptyInputError

        with pytest.raises(EmptyInputError):
            evaluator.evaluate(content)
        mock_client.call_api.assert_not_called()

    def test_provider_error_propagates(self, evaluator, mock_client):
        from weaklog.common.errors import AuthError
        mock_client.call_api.side_effect = AuthError("401", user_message="Invalid API key.")

        with pytest.raises(AuthError):
            evaluator.evaluate(SAMPLE_CONTENT)


class TestFallback:
    @pytest.mark.parametrize("raw", [
        "I cannot evaluate this.",
        '{"checks": "nope", "coreQuestion": "Q?"}',
        '{"checks": {}}',
        '{"checks": {}, "coreQuestion": ""}',
        '{"checks": {}, "coreQuestion": 42}',
        '{"checks": {',
        "",
    ])
    def test_unusable_output_gives_fallback(self, evaluator, mock_client, raw):
        mock_client.call_api.return_value = raw

        result = evaluator.evaluate(SAMPLE_CONTENT)

        assert result.isFallback
        assert result.score == 1
        assert result.recommendation.value == "review"
        assert result.checks.isNonHarmful.passed
        assert result.checks.isNonHarmful.reason == "Assumed safe"
        assert result.checks.hasSpecifics.reason == "Analysis failed - please review"

    def test_fallback_core_question_is_content_prefix(self):
        from weaklog.analysis.triage import fallback_result

        result = fallback_result(SAMPLE_CONTENT)

        assert result.coreQuestion == SAMPLE_CONTENT[:37] + "..."
        assert len(result.coreQuestion) == 40

    def test_fallback_is_logged(self, evaluator, caplog):
        with caplog.at_level(logging.WARNING, logger="weaklog.analysis.triage"):
            evaluator.parse_response("garbage", SAMPLE_CONTENT)
        assert "Using fallback triage result" in caplog.text
