import threading

from adrelevance.session_store import Message, MessageType, SessionState, SessionStore, UserProfile
from adrelevance.vocabulary import ConversationMood, UserMood


def test_concurrent_creators_share_one_session():
    store = SessionStore()
    barrier = threading.Barrier(16)
    results = []

    def create():
        barrier.wait()
        results.append(store.get_or_create_session("c1", "u1"))

    threads = [threading.Thread(target=create) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 16
    assert all(session is results[0] for session in results)
    assert store.session_count() == 1
    assert store.profile_count() == 1


def test_session_lifecycle_states():
    store = SessionStore()
    session = store.get_or_create_session("c1", "u1")
    assert session.state == SessionState.NEW

    session.add_message(Message(content="hi", sender_id="u1", type=MessageType.USER_MESSAGE))
    assert session.state == SessionState.ACTIVE

    session.apply_signals(ConversationMood.POSITIVE, ["shopping"], {"fashion": 1.0})
    assert session.state == SessionState.ANALYZED

    session.add_message(Message(content="more", sender_id="u1", type=MessageType.USER_MESSAGE))
    assert session.state == SessionState.ACTIVE
    assert [message.content for message in session.messages] == ["hi", "more"]


def test_concurrent_appends_are_not_lost():
    session = SessionStore().get_or_create_session("c1", "u1")

    def append(n):
        for i in range(50):
            session.add_message(Message(content=f"{n}-{i}", sender_id="u1", type=MessageType.USER_MESSAGE))

    threads = [threading.Thread(target=append, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert session.message_count == 400


def test_clear_session_removes_it():
    store = SessionStore()
    store.get_or_create_session("c1", "u1")

    assert store.clear_session("c1") is True
    assert store.get_session("c1") is None
    assert store.clear_session("c1") is False


def test_replace_preferences_overwrites_and_rebinds_sessions():
    store = SessionStore()
    session = store.get_or_create_session("c1", "u1")
    store.replace_preferences("u1", interests=["travel"])
    store.record_interaction("u1", "tech_001")

    updated = store.replace_preferences("u1", interests=["food"], blocked_categories=["beauty"])

    assert updated.interests == ["food"]
    assert updated.blocked_categories == ["beauty"]
    assert updated.interaction_counts == {"tech_001": 1}
    assert session.profile is updated
    assert store.get_profile("u1") is updated


def test_record_interaction_counts_up():
    store = SessionStore()

    assert store.record_interaction("u1", "item") == 1
    assert store.record_interaction("u1", "item") == 2
    assert store.get_profile("u1").interaction_count("item") == 2


def test_learn_from_signals_sets_mood_and_appends_interests():
    store = SessionStore()
    store.update_profile("u1", UserProfile(user_id="u1", interests=["travel"]))

    store.learn_from_signals("u1", UserMood.CURIOUS, ["travel", "food"])

    profile = store.get_profile("u1")
    assert profile.current_mood == UserMood.CURIOUS
    assert profile.interests == ["travel", "food"]
