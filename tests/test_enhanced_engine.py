import threading

import pytest

from adrelevance.catalog import Item, ItemType
from adrelevance.config import Settings
from adrelevance.enhanced_engine import NO_ITEM_FALLBACK, LLMEnhancedEngine
from adrelevance.errors import UpstreamError
from adrelevance.llm_suggester import GeminiSuggestionProvider, LLMSuggestion, build_context, parse_suggestion
from adrelevance.session_store import Message, MessageType, SessionStore, UserProfile
from adrelevance.vocabulary import UserMood


class FakeProvider:
    def __init__(self, suggestion=None, error=None):
        self.suggestion = suggestion
        self.error = error
        self.calls = []

    def suggest(self, message, history, profile):
        self.calls.append((message, list(history), profile))
        if self.error is not None:
            raise self.error
        return self.suggestion


class BlockingProvider:
    def __init__(self):
        self.release = threading.Event()

    def suggest(self, message, history, profile):
        self.release.wait(timeout=5)
        return LLMSuggestion(item=None, reply="late", confidence=0.0)


class StubClient:
    def __init__(self, text):
        self.text = text
        self.prompts = []

    def generate_text(self, prompt, **kwargs):
        self.prompts.append(prompt)
        return self.text


def _llm_item():
    return Item(
        id="llm_abc",
        title="Trail Shoes",
        description="Grippy",
        brand="Gemini",
        template="Try these trail shoes! <a href='https://example.com' target='_blank'>Shop Now</a>",
    )


@pytest.fixture
def make_llm_engine():
    created = []

    def _make(provider, settings=None, store=None):
        engine = LLMEnhancedEngine(provider, settings=settings or Settings(), store=store)
        created.append(engine)
        return engine

    yield _make
    for engine in created:
        engine.shutdown()


def test_confident_suggestion_uses_item_template(make_llm_engine):
    provider = FakeProvider(LLMSuggestion(item=_llm_item(), reply="Sure!", confidence=0.8))
    engine = make_llm_engine(provider)

    result = engine.process_message("c1", "u1", "I want new running shoes")

    assert result.item.id == "llm_abc"
    assert result.response == _llm_item().template
    assert result.score == 0.8
    messages = engine.store.get_session("c1").messages
    assert [message.type for message in messages] == [MessageType.USER_MESSAGE, MessageType.SYSTEM_RESPONSE]
    assert messages[-1].content == result.response


def test_low_confidence_returns_reply_without_item(make_llm_engine):
    provider = FakeProvider(LLMSuggestion(item=_llm_item(), reply="Happy to chat.", confidence=0.2))

    result = make_llm_engine(provider).process_message("c1", "u1", "hi")

    assert result.item is None
    assert result.response == "Happy to chat."
    assert result.score == 0.0


def test_threshold_is_inclusive(make_llm_engine):
    provider = FakeProvider(LLMSuggestion(item=_llm_item(), reply="", confidence=0.3))

    assert make_llm_engine(provider).process_message("c1", "u1", "shoes").item is not None


def test_empty_reply_uses_fixed_fallback(make_llm_engine):
    provider = FakeProvider(LLMSuggestion(item=None, reply="", confidence=0.0))

    assert make_llm_engine(provider).process_message("c1", "u1", "hi").response == NO_ITEM_FALLBACK


def test_provider_receives_prior_history_and_profile(make_llm_engine):
    store = SessionStore()
    provider = FakeProvider(LLMSuggestion(item=None, reply="ok", confidence=0.0))
    engine = make_llm_engine(provider, store=store)

    engine.process_message("c1", "u1", "first")
    engine.process_message("c1", "u1", "second")

    message, history, profile = provider.calls[-1]
    assert message == "second"
    assert [entry.content for entry in history] == ["first", "ok"]
    assert profile is store.get_profile("u1")


def test_provider_failure_raises_upstream_error(make_llm_engine):
    engine = make_llm_engine(FakeProvider(error=ConnectionError("down")))

    with pytest.raises(UpstreamError):
        engine.process_message("c1", "u1", "hello")
    assert engine.store.get_session("c1").message_count == 1


def test_provider_timeout_raises_upstream_error(make_llm_engine):
    provider = BlockingProvider()
    engine = make_llm_engine(provider, settings=Settings(llm_timeout_sec=0.05))

    try:
        with pytest.raises(UpstreamError):
            engine.process_message("c1", "u1", "hello")
    finally:
        provider.release.set()


def test_parse_suggestion_builds_linked_item():
    suggestion = parse_suggestion(
        {
            "confidence": 0.9,
            "conversational_response": "You might like these.",
            "ad_suggestion": {
                "title": "Trail Shoes",
                "description": "Grippy soles",
                "category": "Fitness",
                "call_to_action": "Shop Now",
                "url": "https://example.com/shoes",
            },
        }
    )

    item = suggestion.item
    assert item.id.startswith("llm_")
    assert item.categories == ("fitness",)
    assert item.item_type == ItemType.RECOMMENDATION
    assert item.template == "You might like these. <a href='https://example.com/shoes' target='_blank'>Shop Now</a>"
    assert suggestion.confidence == 0.9


def test_parse_suggestion_without_item_and_clamped_confidence():
    suggestion = parse_suggestion({"confidence": 1.7, "conversational_response": "Hello!"})

    assert suggestion.item is None
    assert suggestion.reply == "Hello!"
    assert suggestion.confidence == 1.0


def test_parse_suggestion_rejects_bad_confidence():
    with pytest.raises(UpstreamError):
        parse_suggestion({"confidence": "very", "conversational_response": "x"})


def test_gemini_provider_renders_prompt_and_parses(settings):
    client = StubClient('Here you go:\n```json\n{"confidence": 0.1, "conversational_response": "Hi there"}\n```')
    provider = GeminiSuggestionProvider(client, settings.prompts_dir)
    profile = UserProfile(user_id="u1", interests=["travel"], current_mood=UserMood.CURIOUS)
    history = [Message(content="earlier", sender_id="u1", type=MessageType.USER_MESSAGE)]

    suggestion = provider.suggest("any hotel tips?", history, profile)

    assert suggestion.reply == "Hi there"
    prompt = client.prompts[0]
    assert '"any hotel tips?"' in prompt
    assert "User: earlier" in prompt
    assert "- Current mood: curious" in prompt
    assert "<<" not in prompt


def test_gemini_provider_without_json_raises(settings):
    provider = GeminiSuggestionProvider(StubClient("I cannot help with that."), settings.prompts_dir)

    with pytest.raises(UpstreamError):
        provider.suggest("hello", [], None)


def test_build_context_labels_roles():
    history = [
        Message(content="hi", sender_id="u1", type=MessageType.USER_MESSAGE),
        Message(content="hello!", sender_id="assistant", type=MessageType.SYSTEM_RESPONSE),
    ]

    assert build_context(history, None) == "Recent conversation:\nUser: hi\nAssistant: hello!"


def test_gemini_client_requires_api_key():
    from adrelevance.gemini_client import GeminiClient

    with pytest.raises(ValueError):
        GeminiClient(Settings(gemini_api_key=""))


def test_model_names_are_normalized():
    from adrelevance.gemini_client import _normalize_model_name

    assert _normalize_model_name(" models/gemini-2.5-flash ") == "gemini-2.5-flash"
    assert _normalize_model_name(None) == ""
