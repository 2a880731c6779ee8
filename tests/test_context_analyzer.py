from adrelevance.context_analyzer import (
    ContextAnalyzer,
    ContextSignals,
    combine_text,
    detect_mood,
    to_user_mood,
)
from adrelevance.session_store import Message, MessageType
from adrelevance.vocabulary import MOOD_KEYWORDS, ConversationMood, UserMood


def _user(text):
    return Message(content=text, sender_id="u1", type=MessageType.USER_MESSAGE)


def test_smartphone_message_signals():
    signals = ContextAnalyzer().analyze([_user("I need a new smartphone")])

    assert signals.intents == ("technology",)
    assert signals.topic_weights == {"electronics": 1.0}
    assert signals.mood == ConversationMood.NEUTRAL


def test_empty_history_is_neutral():
    assert ContextAnalyzer().analyze([]) == ContextSignals()


def test_topic_weight_counts_keyword_hits():
    signals = ContextAnalyzer().analyze([_user("Looking for a fashion outfit and a dress")])

    assert signals.topic_weights == {"fashion": 3.0}


def test_only_recent_window_is_analyzed():
    analyzer = ContextAnalyzer(recent_window=1)
    history = [_user("my phone broke"), _user("planning a trip to a nice hotel")]

    signals = analyzer.analyze(history)

    assert signals.intents == ("travel",)
    assert "electronics" not in signals.topic_weights


def test_intents_follow_table_order_without_duplicates():
    signals = ContextAnalyzer().analyze([_user("buy a phone"), _user("shop for a phone app")])

    assert signals.intents == ("shopping", "technology")


def test_mood_tie_goes_to_first_enumerated_label():
    # "excited" is a keyword for both positive and excited.
    assert detect_mood("so excited", MOOD_KEYWORDS) == ConversationMood.POSITIVE


def test_mood_highest_count_wins():
    assert detect_mood("wow, this is incredible and fantastic", MOOD_KEYWORDS) == ConversationMood.EXCITED


def test_combine_text_lowercases_oldest_first():
    assert combine_text([_user("Hello"), _user("WORLD")]) == "hello world"


def test_to_user_mood_mapping():
    assert to_user_mood(ConversationMood.POSITIVE) == UserMood.HAPPY
    assert to_user_mood(ConversationMood.NEGATIVE) == UserMood.FRUSTRATED
    assert to_user_mood(ConversationMood.SERIOUS) == UserMood.NEUTRAL
    assert to_user_mood(ConversationMood.CASUAL) == UserMood.NEUTRAL


def test_empty_keyword_override_is_respected():
    analyzer = ContextAnalyzer(intent_keywords={}, topic_keywords={})

    signals = analyzer.analyze([_user("I need a new smartphone")])

    assert signals.intents == ()
    assert signals.topic_weights == {}
