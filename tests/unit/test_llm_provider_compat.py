from __future__ import annotations

from types import SimpleNamespace

import pytest

from smartcv.llm.providers import LLMProvider, ProviderConfig, parse_json


class FakeChatPayload:
    def __init__(self, *, content: str | None, raw: dict | None = None):
        self.choices = [SimpleNamespace(message=SimpleNamespace(content=content))]
        self._raw = raw or {}

    def model_dump(self) -> dict:
        return self._raw


class FakeChatCompletionsAPI:
    def __init__(self, fn):
        self._fn = fn
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return self._fn(**kwargs)


class FakeClient:
    def __init__(self, chat_fn):
        self.chat = SimpleNamespace(completions=FakeChatCompletionsAPI(chat_fn))


def _provider_with_fake_client(fake_client: FakeClient) -> LLMProvider:
    provider = LLMProvider(
        ProviderConfig(
            name="openai",
            base_url="http://localhost:9999/v1",
            api_key="dummy",
            model="gpt-4o-mini",
            timeout_sec=5,
        )
    )
    provider.client = fake_client
    return provider


def test_complete_text_sends_system_and_user_messages() -> None:
    client = FakeClient(lambda **kwargs: FakeChatPayload(content="CHAT_OK", raw={"id": "chat_1"}))
    provider = _provider_with_fake_client(client)

    result = provider.complete_text(system="be brief", user="ping")

    assert result.content == "CHAT_OK"
    assert result.raw["provider"] == "openai"
    call = client.chat.completions.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert [message["role"] for message in call["messages"]] == ["system", "user"]


def test_complete_text_handles_empty_content() -> None:
    provider = _provider_with_fake_client(FakeClient(lambda **kwargs: FakeChatPayload(content=None)))
    assert provider.complete_text(system="s", user="u").content == ""


def test_complete_text_propagates_client_errors() -> None:
    def chat_fn(**kwargs):
        raise RuntimeError("chat path failed")

    provider = _provider_with_fake_client(FakeClient(chat_fn))
    with pytest.raises(RuntimeError, match="chat path failed"):
        provider.complete_text(system="s", user="u")


def test_complete_json_parses_fenced_payload() -> None:
    content = '```json\n{"action": "search_jobs", "filters": {"location": "Lagos"}}\n```'
    provider = _provider_with_fake_client(FakeClient(lambda **kwargs: FakeChatPayload(content=content)))

    payload = provider.complete_json(system="s", user="find jobs in Lagos")

    assert payload == {"action": "search_jobs", "filters": {"location": "Lagos"}}


@pytest.mark.parametrize(
    "content, expected",
    [
        ('Sure! {"skills": 80} hope that helps', {"skills": 80}),
        ("[1, 2, 3]", {}),
        ("not json at all", {}),
        ("", {}),
    ],
)
def test_parse_json_is_lenient(content: str, expected: dict) -> None:
    assert parse_json(content) == expected
