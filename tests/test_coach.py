"""Tests for the coaching adapter (Gemini is mocked)."""

import json
from unittest.mock import MagicMock, patch

import pytest

from src.agent.coach import ask_coach, build_coach_message, save_coaching_response
from src.agent.llm import MAX_OUTPUT_TOKENS, MODEL, generate_reply, get_client
from src.agent.prompts import build_instruction, build_system_prompt
from src.tools.activity import Profile
from tests.factories import make_run, utc

NOW = utc(2024, 1, 10, 12)


def _mock_llm_response(text):
    mock_response = MagicMock()
    mock_response.text = text
    mock_client = MagicMock()
    mock_client.models.generate_content.return_value = mock_response
    return mock_client


# ── Prompts ──────────────────────────────────────────────────────


class TestPrompts:
    def test_system_prompt_without_goal(self):
        assert "## Athlete's Goal" not in build_system_prompt(None)

    def test_system_prompt_with_goal(self):
        prompt = build_system_prompt(Profile(goal_race="Boston", goal_time="3:05:00"))
        assert "## Athlete's Goal\nRace: Boston\nTarget Time: 3:05:00\n" in prompt

    def test_ask_embeds_question(self):
        assert '"Should I race this weekend?"' in build_instruction("ask", "Should I race this weekend? ")

    def test_ask_needs_question(self):
        with pytest.raises(ValueError):
            build_instruction("ask", "  ")

    def test_unknown_command(self):
        with pytest.raises(ValueError, match="Unknown coaching command"):
            build_instruction("plan")

    def test_message_layout(self):
        assert build_coach_message("CTX", "DO THIS") == "## Training Data\n\nCTX\n\n---\n\nDO THIS"


# ── ask_coach ────────────────────────────────────────────────────


class TestAskCoach:
    def test_sends_context_and_saves_history(self, store, tmp_path):
        store.insert(make_run(km=10, when=utc(2024, 1, 8), external_id=1))
        client = _mock_llm_response("  Solid week.  ")
        history = tmp_path / "coaching"

        reply = ask_coach("week", store, client=client, now=NOW, history_dir=history)

        assert reply == "Solid week."
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == MODEL
        assert kwargs["config"].max_output_tokens == MAX_OUTPUT_TOKENS
        message = kwargs["contents"][0].parts[0].text
        assert message.startswith("## Training Data\n\n## Current Week\nWeek of 2024-01-08")
        assert "Give me a weekly summary" in message

        saved = list(history.glob("*_week.json"))
        assert len(saved) == 1
        record = json.loads(saved[0].read_text())
        assert record["command"] == "week"
        assert record["response"] == "Solid week."
        assert record["prompt"] == message

    def test_profile_reaches_system_prompt(self, store, tmp_path):
        client = _mock_llm_response("ok")
        ask_coach("analyze", store, Profile(goal_race="NYC Marathon"), client=client,
                  now=NOW, history_dir=tmp_path)
        config = client.models.generate_content.call_args.kwargs["config"]
        assert "Race: NYC Marathon" in config.system_instruction

    def test_empty_store_still_asks(self, store, tmp_path):
        client = _mock_llm_response("Go run.")
        ask_coach("analyze", store, client=client, now=NOW, history_dir=tmp_path)
        message = client.models.generate_content.call_args.kwargs["contents"][0].parts[0].text
        assert "No running activities found" in message

    def test_unknown_command_makes_no_call(self, store, tmp_path):
        client = _mock_llm_response("never")
        with pytest.raises(ValueError):
            ask_coach("plan", store, client=client, now=NOW, history_dir=tmp_path)
        client.models.generate_content.assert_not_called()

    def test_api_error_propagates_without_history(self, store, tmp_path):
        client = MagicMock()
        client.models.generate_content.side_effect = Exception("API error")
        with pytest.raises(Exception, match="API error"):
            ask_coach("analyze", store, client=client, now=NOW, history_dir=tmp_path)
        assert list(tmp_path.iterdir()) == []

    def test_default_client(self, store, tmp_path):
        client = _mock_llm_response("ok")
        with patch("src.agent.coach.get_client", return_value=client):
            ask_coach("analyze", store, now=NOW, history_dir=tmp_path)
        client.models.generate_content.assert_called_once()


class TestHistory:
    def test_filename_uses_timestamp_and_command(self, tmp_path):
        path = save_coaching_response("ask", "p", "r", created_at=utc(2024, 1, 10, 9, 5), history_dir=tmp_path)
        assert path.name == "2024-01-10_090500_ask.json"


class TestClient:
    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            get_client()

    def test_model_override(self, monkeypatch):
        monkeypatch.setenv("GEMINI_MODEL", "gemini-2.5-pro")
        client = _mock_llm_response("ok")
        assert generate_reply("hi", "be a coach", client=client) == "ok"
        assert client.models.generate_content.call_args.kwargs["model"] == "gemini-2.5-pro"
