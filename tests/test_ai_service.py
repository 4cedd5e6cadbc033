"""Tests for prompt construction and the completion wrapper."""
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from app.models import SenderType
from app.services.ai_service import (
    SUPPORT_EMAIL,
    AIService,
    AIServiceError,
    build_system_prompt,
    history_to_messages,
)
from app.services.chat_service import mentions_devices

from conftest import fake_message


class FakeCompletions:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.reply))])


def service_with(completions: FakeCompletions) -> AIService:
    service = AIService()
    service._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return service


class TestPrompt:
    def test_default_language_is_spanish(self):
        """Without a language the assistant answers in Spanish."""
        prompt = build_system_prompt()
        assert "Answer in Spanish" in prompt
        assert SUPPORT_EMAIL in prompt

    def test_document_appended(self):
        """Document text is appended only when present."""
        assert "CURRENT DOCUMENT CONTENT" not in build_system_prompt("en", "   ")
        prompt = build_system_prompt("en", "Report body")
        assert "Answer in English" in prompt
        assert prompt.index("CURRENT DOCUMENT CONTENT") < prompt.index("Report body")

    def test_device_context_appended(self):
        """Device context gets its own section."""
        assert "AVAILABLE DEVICES" in build_system_prompt(device_context="- Station 1")

    def test_history_roles(self):
        """User messages map to user, AI messages to assistant."""
        history = [fake_message(SenderType.USER, "hi"), fake_message(SenderType.AI, "hello")]
        assert history_to_messages(history) == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ]

    def test_device_keywords(self):
        """Questions about stations or readings pull in device context."""
        assert mentions_devices("What is the humedad on my station?")
        assert not mentions_devices("When should I plant beans?")


class TestGenerate:
    async def test_request_shape(self):
        """The prompt, history and question are sent in order."""
        completions = FakeCompletions(reply="Irrigate at dawn.")
        service = service_with(completions)
        reply = await service.generate_response(
            "When should I irrigate?",
            history=[fake_message(SenderType.USER, "hi")],
            language="en"
        )

        assert reply == "Irrigate at dawn."
        messages = completions.kwargs["messages"]
        assert messages[0]["role"] == "system"
        assert messages[1] == {"role": "user", "content": "hi"}
        assert messages[-1] == {"role": "user", "content": "When should I irrigate?"}
        assert completions.kwargs["max_tokens"] == 1500

    async def test_sdk_error_wrapped(self):
        """SDK failures surface as AIServiceError."""
        service = service_with(FakeCompletions(error=OpenAIError("quota exceeded")))
        with pytest.raises(AIServiceError, match="quota exceeded"):
            await service.generate_response("hello")

    async def test_empty_completion(self):
        """An empty completion is an error."""
        service = service_with(FakeCompletions(reply=""))
        with pytest.raises(AIServiceError):
            await service.generate_response("hello")

    def test_missing_key(self):
        """The client cannot be created without an API key."""
        with pytest.raises(AIServiceError, match="not configured"):
            AIService().client
