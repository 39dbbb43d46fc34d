"""
Tests for the drafting endpoints.

The model is always mocked; these tests check what reaches it (or doesn't)
and how its answers and failures are reported.
"""

import threading
from datetime import date, datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import httpx
import pytest
from anthropic import APIConnectionError

from conftest import auth_header
from letterlab.ai import client as ai
from letterlab.ai.client import Generation, ModelError
from letterlab.ai.prompts import (
    build_email_messages,
    looks_like_chat_greeting,
    looks_like_email_greeting,
    sanitize_text,
)
from letterlab.services.usage import query_usage

NOTES = "Tell the vendor the shipment slipped to Friday, ask for revised invoice."


@pytest.fixture
def mock_generate():
    with patch("letterlab.ai.client.generate") as gen:
        gen.return_value = Generation(text="Subject: Shipment update\n\nHi team,", input_tokens=40, output_tokens=60)
        yield gen


class TestPrompts:

    def test_sanitize(self):
        assert sanitize_text("  abc  ", 10) == "abc"
        assert sanitize_text("abcdef", 3) == "abc"
        assert sanitize_text(42, 10) == ""
        assert sanitize_text(None, 10) == ""

    @pytest.mark.parametrize("notes,expected", [
        ("hi", True),
        ("Hello there!", True),
        ("hey, how's it going", True),
        ("Hi Sam, " + "please confirm the meeting moved to 3pm and send the deck " * 3, False),
        ("history lesson recap for the team", False),
        (NOTES, False),
    ])
    def test_email_greeting(self, notes, expected):
        assert looks_like_email_greeting(notes) is expected

    @pytest.mark.parametrize("message,expected", [
        ("hey", True),
        ("Good morning!", True),
        ("how r u", True),
        ("what's up", True),
        ("can you explain passive voice?", False),
    ])
    def test_chat_greeting(self, message, expected):
        assert looks_like_chat_greeting(message) is expected

    def test_email_prompt_wraps_notes(self):
        system, messages = build_email_messages(NOTES, "Friendly")
        assert "LetterLab Pro" in system
        [msg] = messages
        assert msg["role"] == "user"
        assert "<tone>Friendly</tone>" in msg["content"]
        assert f"<user_notes>\n{NOTES}\n</user_notes>" in msg["content"]


class TestClientWrapper:

    def test_missing_key_is_500(self):
        from fastapi import HTTPException
        with pytest.raises(HTTPException) as exc:
            ai.get_client()
        assert exc.value.status_code == 500

    def test_joins_text_blocks_and_counts_tokens(self):
        fake = MagicMock()
        fake.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="Dear "),
                SimpleNamespace(type="tool_use"),
                SimpleNamespace(type="text", text="Sam,"),
            ],
            usage=SimpleNamespace(input_tokens=11, output_tokens=4),
        )
        with patch("letterlab.ai.client.get_client", return_value=fake):
            result = ai.generate("system", [{"role": "user", "content": "x"}])
        assert result.text == "Dear Sam,"
        assert result.total_tokens == 15
        kwargs = fake.messages.create.call_args.kwargs
        assert kwargs["system"] == "system"

    def test_sdk_error_becomes_model_error(self):
        fake = MagicMock()
        fake.messages.create.side_effect = APIConnectionError(
            request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        )
        with patch("letterlab.ai.client.get_client", return_value=fake):
            with pytest.raises(ModelError):
                ai.generate("system", [])


class TestGenerateEmail:

    def test_success(self, client, mock_generate):
        resp = client.post("/api/generate-email", json={"notes": NOTES, "tone": "Warm"})
        assert resp.status_code == 200
        assert resp.json() == {"text": "Subject: Shipment update\n\nHi team,"}
        system, messages = mock_generate.call_args.args
        assert "<tone>Warm</tone>" in messages[0]["content"]

    def test_default_tone(self, client, mock_generate):
        client.post("/api/generate-email", json={"notes": NOTES, "tone": "   "})
        _, messages = mock_generate.call_args.args
        assert "<tone>Professional</tone>" in messages[0]["content"]

    def test_empty_notes_skip_model(self, client, mock_generate):
        for body in ({}, {"notes": ""}, {"notes": "    "}, {"notes": 123}):
            resp = client.post("/api/generate-email", json=body)
            assert resp.status_code == 400
            assert resp.json() == {"error": 'Missing "notes"'}
        mock_generate.assert_not_called()

    def test_greeting_gets_guidance(self, client, mock_generate):
        resp = client.post("/api/generate-email", json={"notes": "hello!"})
        assert resp.status_code == 400
        assert "/api/chat" in resp.json()["error"]
        mock_generate.assert_not_called()

    def test_empty_model_text_is_502(self, client, mock_generate):
        mock_generate.return_value = Generation(text="   ")
        resp = client.post("/api/generate-email", json={"notes": NOTES})
        assert resp.status_code == 502
        assert resp.json() == {"error": "Empty response"}

    def test_model_failure_is_502(self, client, mock_generate):
        mock_generate.side_effect = ModelError("upstream down")
        resp = client.post("/api/generate-email", json={"notes": NOTES})
        assert resp.status_code == 502
        assert "upstream" not in resp.json()["error"]

    def test_missing_key_is_500(self, client):
        resp = client.post("/api/generate-email", json={"notes": NOTES})
        assert resp.status_code == 500

    def test_disabled_flag_is_404(self, client, mock_generate, monkeypatch):
        monkeypatch.setenv("ENABLE_EMAIL", "0")
        resp = client.post("/api/generate-email", json={"notes": NOTES})
        assert resp.status_code == 404
        mock_generate.assert_not_called()

    def test_records_usage_for_signed_in_caller(self, client, alice, session, mock_generate):
        for _ in range(2):
            resp = client.post("/api/generate-email", json={"notes": NOTES}, headers=auth_header(alice["token"]))
            assert resp.status_code == 200
        today = datetime.now(timezone.utc).date()
        [row] = query_usage(session, alice["_id"], today, today)
        assert row.emails_drafted == 2
        assert row.daily_tokens == 200

    def test_anonymous_caller_records_nothing(self, client, alice, session, mock_generate):
        client.post("/api/generate-email", json={"notes": NOTES})
        assert query_usage(session, alice["_id"], date(2000, 1, 1)) == []

    def test_model_call_does_not_block_other_requests(self, client, mock_generate):
        started, release = threading.Event(), threading.Event()

        def slow(*args, **kwargs):
            started.set()
            release.wait(5)
            return Generation(text="done")

        mock_generate.side_effect = slow
        responses = []
        worker = threading.Thread(
            target=lambda: responses.append(client.post("/api/generate-email", json={"notes": NOTES}))
        )
        worker.start()
        try:
            assert started.wait(5)
            assert client.get("/healthz").status_code == 200
            assert worker.is_alive()
        finally:
            release.set()
            worker.join(5)
        assert responses[0].status_code == 200


class TestChat:

    @pytest.fixture(autouse=True)
    def _enable_chat(self, monkeypatch):
        monkeypatch.setenv("ENABLE_CHAT", "1")

    def test_disabled_by_default(self, client, monkeypatch):
        monkeypatch.setenv("ENABLE_CHAT", "0")
        assert client.post("/api/chat", json={"message": "hey"}).status_code == 404

    def test_greeting_answered_locally(self, client, mock_generate):
        resp = client.post("/api/chat", json={"message": "Hey"})
        assert resp.status_code == 200
        assert resp.json()["text"]
        mock_generate.assert_not_called()

    def test_empty_message(self, client, mock_generate):
        resp = client.post("/api/chat", json={"message": "  "})
        assert resp.status_code == 400
        mock_generate.assert_not_called()

    def test_model_reply(self, client, mock_generate):
        mock_generate.return_value = Generation(text="Passive voice hides the actor.")
        resp = client.post("/api/chat", json={"message": "What is passive voice?"})
        assert resp.json() == {"text": "Passive voice hides the actor."}

    def test_model_failure(self, client, mock_generate):
        mock_generate.side_effect = ModelError("boom")
        assert client.post("/api/chat", json={"message": "What is passive voice?"}).status_code == 502
