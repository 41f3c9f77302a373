from __future__ import annotations

from types import SimpleNamespace

import pytest

from roadside_narrator.config import Settings
from roadside_narrator.models import ContentStyle, FullStoryRequest, Location, StorySeed, StructuredPOI, TextDescription
from roadside_narrator.providers.llm import (
    LLMUnavailableError,
    MockLLMBackend,
    OpenAILLMBackend,
    estimate_duration,
    parse_seed_drafts,
    select_llm_backend,
)


class FakeCompletions:
    def __init__(self, replies: list[object]) -> None:
        self.replies = list(replies)
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=reply))],
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=30, total_tokens=42),
        )


def _client(replies: list[object]) -> SimpleNamespace:
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(replies)))


def _bridge() -> StructuredPOI:
    return StructuredPOI(
        name="Brooklyn Bridge",
        category="bridge",
        location=Location(latitude=40.7061, longitude=-73.9969),
        location_description="New York",
    )


def test_mock_content_mentions_subject_and_seed() -> None:
    backend = MockLLMBackend()
    seed = StorySeed(story_id="s1", title="Cables and Caissons", summary="How it was built.", location=None)

    generated = backend.generate_content(
        FullStoryRequest(input=_bridge(), content_style=ContentStyle.HISTORICAL, story_seed=seed)
    )

    assert "Brooklyn Bridge in New York" in generated.content
    assert "Today's story: Cables and Caissons." in generated.content
    assert generated.estimated_duration > 0
    assert generated.sources == ["Mock LLM Service", "Generated Content"]
    assert backend.content_calls == 1


def test_mock_content_is_deterministic() -> None:
    request = FullStoryRequest(input=TextDescription(description="a quiet river bend"))

    assert MockLLMBackend().generate_content(request).content == MockLLMBackend().generate_content(request).content


def test_mock_seed_drafts_per_input_kind() -> None:
    backend = MockLLMBackend()

    structured = backend.generate_seed_drafts(_bridge())
    text = backend.generate_seed_drafts(TextDescription(description="a quiet river bend"))

    assert [draft.title for draft in structured] == ["The Story of Brooklyn Bridge"]
    assert [draft.title for draft in text] == ["Around This Spot"]
    assert backend.seed_calls == 2


def test_prompt_includes_seed_focus() -> None:
    seed = StorySeed(story_id="s1", title="Cables and Caissons", summary="How it was built.", location=None)

    prompt = MockLLMBackend().generate_prompt(FullStoryRequest(input=_bridge(), story_seed=seed))

    assert "Brooklyn Bridge" in prompt
    assert "Cables and Caissons" in prompt


def test_estimate_duration_uses_narration_pace() -> None:
    assert estimate_duration("word " * 155) == 60
    assert estimate_duration("") == 1
    assert estimate_duration("One. Two.", pause_per_sentence=0.5) > estimate_duration("One. Two.")


def test_parse_seed_drafts_reads_summary_title_blocks() -> None:
    text = (
        "SUMMARY: The bridge took fourteen years to build.\n"
        "TITLE: Fourteen Years\n\n"
        "SUMMARY: A parade of elephants proved its strength.\n"
        "TITLE: Elephants on the Span\n"
    )

    drafts = parse_seed_drafts(text)

    assert [draft.title for draft in drafts] == ["Fourteen Years", "Elephants on the Span"]
    assert drafts[1].summary == "A parade of elephants proved its strength."


def test_parse_seed_drafts_handles_no_ideas_and_garbage() -> None:
    assert parse_seed_drafts("There are no story ideas for this place.") == []
    assert parse_seed_drafts("TITLE: orphan title only") == []


def test_openai_backend_requires_key_without_client() -> None:
    with pytest.raises(LLMUnavailableError):
        OpenAILLMBackend(api_key=None)


def test_openai_backend_generates_content_with_model_source() -> None:
    client = _client(["The bridge opened in 1883. Crowds walked across."])
    backend = OpenAILLMBackend(api_key=None, model="gpt-test", client=client)

    generated = backend.generate_content(FullStoryRequest(input=_bridge()))

    assert generated.content.startswith("The bridge opened")
    assert generated.sources == ["OpenAI", "gpt-test"]
    call = client.chat.completions.calls[0]
    assert call["model"] == "gpt-test"
    assert call["messages"][0]["role"] == "system"
    assert "Brooklyn Bridge" in call["messages"][1]["content"]


def test_openai_backend_retries_with_backoff() -> None:
    delays: list[float] = []
    client = _client([RuntimeError("rate limited"), "", "Finally, a story."])
    backend = OpenAILLMBackend(api_key=None, client=client, retry_delay_seconds=0.5, sleep=delays.append)

    generated = backend.generate_content(FullStoryRequest(input=_bridge()))

    assert generated.content == "Finally, a story."
    assert delays == [0.5, 1.0]
    assert len(client.chat.completions.calls) == 3


def test_openai_backend_raises_after_last_attempt() -> None:
    client = _client([RuntimeError("down"), RuntimeError("still down")])
    backend = OpenAILLMBackend(api_key=None, client=client, max_retries=2, sleep=lambda _: None)

    with pytest.raises(RuntimeError, match="still down"):
        backend.generate_content(FullStoryRequest(input=_bridge()))


def test_openai_seed_drafts_are_parsed() -> None:
    client = _client(["SUMMARY: Built by the Roeblings.\nTITLE: A Family Bridge"])
    backend = OpenAILLMBackend(api_key=None, client=client)

    drafts = backend.generate_seed_drafts(_bridge())

    assert [draft.title for draft in drafts] == ["A Family Bridge"]


def test_select_backend_defaults_to_mock() -> None:
    assert isinstance(select_llm_backend(Settings(openai_api_key=None)), MockLLMBackend)


def test_select_backend_uses_openai_when_key_present() -> None:
    pytest.importorskip("openai")

    backend = select_llm_backend(Settings(openai_api_key="sk-test", openai_model="gpt-test"))

    assert isinstance(backend, OpenAILLMBackend)
    assert backend.model == "gpt-test"
