"""
Tests for backend/sessions.py: session reducers, the persisted SessionStore,
bounded persistence and auto-attach selection.
"""
import asyncio
import logging
import sys
from pathlib import Path

import pytest

BACKEND = str(Path(__file__).parent.parent)
if BACKEND not in sys.path:
    sys.path.insert(0, BACKEND)

import sessions  # noqa: E402
from images import ImageFetchError  # noqa: E402
from models import get_model_by_id  # noqa: E402
from models.base import URI_OUTPUT, define_model, prompt_param  # noqa: E402
from schemas import ChatMessage, GenerationStatus, MessageContent, MessageRole  # noqa: E402
from sessions import SessionStore  # noqa: E402
from storage import KeyValueStore, StorageQuotaExceeded  # noqa: E402

TEXT_ONLY_MODEL = define_model({
    "id": "text-only",
    "name": "Text Only",
    "owner": "acme",
    "model": "text-only",
    "description": "",
    "category": "text-to-image",
    "estimatedTime": "1 s",
    "quality": "fast",
    "schema": {"required": ["prompt"], "properties": {"prompt": prompt_param("p")}},
    "output": URI_OUTPUT,
})


class QuotaKV:
    """In-memory stand-in that rejects writes holding more than `limit` messages."""

    def __init__(self, limit: int):
        self.limit = limit
        self.saved = None
        self.attempts = []

    def load(self, key):
        return self.saved

    def save(self, key, value):
        total = sum(len(s["messages"]) for s in value["sessions"])
        self.attempts.append(total)
        if total > self.limit:
            raise StorageQuotaExceeded(f"{total} messages over limit")
        self.saved = value


def succeeded(url, is_video=False):
    return MessageContent(status=GenerationStatus.succeeded, generated_images=[url], is_video=is_video)


# ─── Lifecycle ───────────────────────────────────────────────────────────────

class TestHydrate:
    def test_fresh_store_has_one_default_session(self, session_store):
        assert len(session_store.sessions) == 1
        assert session_store.sessions[0].name == "New Chat"
        assert session_store.current_session_id == session_store.sessions[0].id

    def test_state_survives_restart(self, kv):
        first = SessionStore(kv)
        first.add_user_message(MessageContent(prompt="a red fox"))
        first.create_session()
        current = first.current_session_id

        second = SessionStore(kv)
        assert [s.name for s in second.sessions] == ["New Chat", "Chat 2"]
        assert second.current_session_id == current
        assert second.sessions[0].messages[0].content.prompt == "a red fox"

    def test_malformed_state_starts_fresh(self, kv):
        kv.save("chat-sessions", {"sessions": "nope"})
        store = SessionStore(kv)
        assert len(store.sessions) == 1

    def test_empty_session_list_starts_fresh(self, kv):
        kv.save("chat-sessions", {"sessions": [], "current_session_id": None})
        assert len(SessionStore(kv).sessions) == 1

    def test_dangling_current_id_is_repaired(self, kv):
        kv.save("chat-sessions", {
            "sessions": [{"id": "s1", "name": "A", "created_at": 1, "updated_at": 1, "messages": []}],
            "current_session_id": "gone",
        })
        assert SessionStore(kv).current_session_id == "s1"


class TestSessions:
    def test_create_names_sequentially_and_switches(self, session_store):
        created = session_store.create_session()
        assert created.name == "Chat 2"
        assert session_store.current_session_id == created.id

    def test_switch_only_moves_the_pointer(self, session_store):
        first = session_store.current_session_id
        session_store.add_user_message(MessageContent(prompt="hello"))
        session_store.create_session()
        assert session_store.messages == []
        assert session_store.switch_session(first) is True
        assert [m.content.prompt for m in session_store.messages] == ["hello"]

    def test_switch_to_unknown_is_ignored(self, session_store):
        current = session_store.current_session_id
        assert session_store.switch_session("missing") is False
        assert session_store.current_session_id == current

    def test_deleting_only_session_leaves_a_fresh_one(self, session_store):
        only = session_store.current_session_id
        session_store.add_user_message(MessageContent(prompt="hello"))
        session_store.delete_session(only)

        assert len(session_store.sessions) == 1
        fresh = session_store.sessions[0]
        assert fresh.id != only
        assert fresh.messages == []
        assert session_store.current_session_id == fresh.id

    def test_deleting_current_falls_back_to_first(self, session_store):
        first = session_store.current_session_id
        second = session_store.create_session().id
        session_store.delete_session(second)
        assert session_store.current_session_id == first

    def test_deleting_other_session_keeps_current(self, session_store):
        first = session_store.current_session_id
        second = session_store.create_session().id
        session_store.delete_session(first)
        assert session_store.current_session_id == second

    def test_rename_and_clear(self, session_store):
        sid = session_store.current_session_id
        session_store.add_user_message(MessageContent(prompt="x"))
        session_store.rename_session(sid, "Portraits")
        session_store.clear_current_session()
        assert session_store.current_session.name == "Portraits"
        assert session_store.messages == []

    def test_session_cap_evicts_oldest(self, kv):
        store = SessionStore(kv, max_sessions=3)
        oldest = store.current_session_id
        for _ in range(3):
            store.create_session()
        assert len(store.sessions) == 3
        assert oldest not in [s.id for s in store.sessions]
        assert store.current_session_id == store.sessions[-1].id


class TestMessages:
    def test_append_order_and_roles(self, session_store):
        session_store.add_user_message(MessageContent(prompt="one"))
        session_store.add_assistant_message(MessageContent(status=GenerationStatus.processing))
        session_store.add_system_message("model switched")
        assert [m.role for m in session_store.messages] == [
            MessageRole.user, MessageRole.assistant, MessageRole.system,
        ]
        assert session_store.messages[-1].content.text == "model switched"

    def test_message_cap_keeps_newest(self, kv):
        store = SessionStore(kv, max_messages=3)
        for i in range(5):
            store.add_user_message(MessageContent(prompt=str(i)))
        assert [m.content.prompt for m in store.messages] == ["2", "3", "4"]

    def test_update_assistant_message_in_place(self, session_store):
        msg = session_store.add_assistant_message(MessageContent(status=GenerationStatus.processing, model_id="m"))
        updated = session_store.update_message(msg.id, status=GenerationStatus.failed, error="boom")
        assert updated.id == msg.id
        assert updated.content.error == "boom"
        assert updated.content.model_id == "m"
        assert len(session_store.messages) == 1

    def test_update_ignores_user_messages(self, session_store):
        msg = session_store.add_user_message(MessageContent(prompt="keep"))
        session_store.update_message(msg.id, prompt="changed")
        assert session_store.find_message(msg.id).content.prompt == "keep"

    def test_update_reaches_non_current_session(self, session_store):
        msg = session_store.add_assistant_message(MessageContent(status=GenerationStatus.processing))
        session_store.create_session()
        session_store.update_message(msg.id, status=GenerationStatus.succeeded)
        assert session_store.find_message(msg.id).content.status == GenerationStatus.succeeded

    def test_delete_message(self, session_store):
        a = session_store.add_user_message(MessageContent(prompt="a"))
        session_store.add_user_message(MessageContent(prompt="b"))
        session_store.delete_message(a.id)
        assert [m.content.prompt for m in session_store.messages] == ["b"]


# ─── Persistence degradation ─────────────────────────────────────────────────

class TestBoundedPersistence:
    def test_quota_retries_with_reduced_window(self):
        kv = QuotaKV(limit=3)
        store = SessionStore(kv, max_messages=10, reduced_messages=2)
        for i in range(5):
            store.add_user_message(MessageContent(prompt=str(i)))

        assert len(store.messages) == 5
        persisted = kv.saved["sessions"][0]["messages"]
        assert [m["content"]["prompt"] for m in persisted] == ["3", "4"]

    def test_falls_back_to_empty_history(self, caplog):
        kv = QuotaKV(limit=0)
        store = SessionStore(kv, max_messages=10, reduced_messages=2)
        with caplog.at_level(logging.WARNING, logger="sessions"):
            store.add_user_message(MessageContent(prompt="big"))

        assert kv.saved["sessions"][0]["messages"] == []
        assert store.messages[0].content.prompt == "big"
        assert kv.attempts[-3:] == [1, 1, 0]

    def test_never_raises_when_nothing_fits(self, caplog):
        class FullKV(QuotaKV):
            def save(self, key, value):
                raise StorageQuotaExceeded("disk full")

        store = SessionStore(FullKV(limit=0))
        with caplog.at_level(logging.WARNING, logger="sessions"):
            store.add_user_message(MessageContent(prompt="x"))
        assert store.messages[0].content.prompt == "x"
        assert any("could not be persisted" in r.message for r in caplog.records)

    def test_real_store_quota(self, tmp_path):
        kv = KeyValueStore(str(tmp_path / "tiny.db"), quota_bytes=2000)
        store = SessionStore(kv, max_messages=50, reduced_messages=2)
        for i in range(10):
            store.add_user_message(MessageContent(prompt=f"{i}-" + "x" * 150))
        persisted = kv.load("chat-sessions")["sessions"][0]["messages"]
        assert len(persisted) <= 2
        assert len(store.messages) == 10


# ─── Reducers ────────────────────────────────────────────────────────────────

class TestReducers:
    def test_reducers_do_not_mutate_input(self):
        state = sessions.initial_state(1.0)
        before = state.model_dump()
        sessions.create_session(state, 2.0)
        sessions.rename_session(state, state.sessions[0].id, "X", 2.0)
        sessions.delete_session(state, state.sessions[0].id, 2.0)
        assert state.model_dump() == before

    def test_windowed_zero_drops_all(self):
        state = sessions.initial_state(1.0)
        assert sessions.windowed(state, 0).sessions[0].messages == []


# ─── Auto-attach ─────────────────────────────────────────────────────────────

class TestAutoAttach:
    def test_picks_most_recent_success(self, session_store):
        session_store.add_assistant_message(succeeded("https://r/1.png"))
        session_store.add_user_message(MessageContent(prompt="again"))
        session_store.add_assistant_message(succeeded("https://r/2.png"))
        assert session_store.last_generated_image() == "https://r/2.png"

    def test_skips_video_failed_and_processing(self, session_store):
        session_store.add_assistant_message(succeeded("https://r/image.png"))
        session_store.add_assistant_message(succeeded("https://r/clip.mp4", is_video=True))
        session_store.add_assistant_message(MessageContent(status=GenerationStatus.failed, error="x"))
        session_store.add_assistant_message(MessageContent(status=GenerationStatus.processing))
        assert session_store.last_generated_image() == "https://r/image.png"

    def test_no_candidate_without_image_input(self, session_store):
        session_store.add_assistant_message(succeeded("https://r/1.png"))
        assert session_store.auto_attach_candidate(get_model_by_id("nano-banana")) == "https://r/1.png"
        assert session_store.auto_attach_candidate(TEXT_ONLY_MODEL) is None
        assert session_store.auto_attach_candidate(None) is None

    def test_dismissal_survives_clear_and_session_switch(self, session_store):
        session_store.add_assistant_message(succeeded("https://r/1.png"))
        session_store.dismiss_auto_attach()
        session_store.clear_current_input()
        session_store.create_session()
        assert session_store.current_input.auto_attach_disabled is True
        assert session_store.auto_attach_candidate(get_model_by_id("seedream-4")) is None

    def test_refresh_converts_candidate(self, session_store, image_ref):
        session_store.add_assistant_message(succeeded("https://r/1.png"))
        seen = []

        async def converter(url):
            seen.append(url)
            return image_ref

        result = asyncio.run(session_store.refresh_auto_attach(get_model_by_id("seedream-4"), converter))
        assert seen == ["https://r/1.png"]
        assert result == image_ref
        assert session_store.current_input.auto_attached_image == image_ref

    def test_refresh_failure_clears_attachment(self, session_store, image_ref):
        session_store.add_assistant_message(succeeded("https://r/1.png"))
        session_store.set_auto_attached_image(image_ref)

        async def converter(url):
            raise ImageFetchError("Failed to fetch image from https://r/1.png: Not Found")

        result = asyncio.run(session_store.refresh_auto_attach(get_model_by_id("seedream-4"), converter))
        assert result is None
        assert session_store.current_input.auto_attached_image is None

    def test_dismissal_during_conversion_wins(self, session_store, image_ref):
        session_store.add_assistant_message(succeeded("https://r/1.png"))

        async def converter(url):
            session_store.dismiss_auto_attach()
            await asyncio.sleep(0)
            return image_ref

        result = asyncio.run(session_store.refresh_auto_attach(get_model_by_id("seedream-4"), converter))
        assert result is None
        assert session_store.current_input.auto_attached_image is None
        assert session_store.current_input.auto_attach_disabled is True

    def test_newer_result_during_conversion_is_not_overwritten(self, session_store, image_ref):
        session_store.add_assistant_message(succeeded("https://r/1.png"))

        async def converter(url):
            session_store.add_assistant_message(succeeded("https://r/2.png"))
            return image_ref

        result = asyncio.run(session_store.refresh_auto_attach(get_model_by_id("seedream-4"), converter))
        assert result is None
        assert session_store.current_input.auto_attached_image is None


class TestCurrentInput:
    def test_attachments(self, session_store, image_ref):
        session_store.set_prompt("cat")
        session_store.add_attachment(image_ref)
        session_store.add_attachment(image_ref)
        session_store.remove_attachment(0)
        session_store.remove_attachment(5)
        assert session_store.current_input.prompt == "cat"
        assert len(session_store.current_input.image_attachments) == 1

    def test_clear_resets_everything_but_dismissal(self, session_store, image_ref):
        session_store.set_prompt("cat")
        session_store.add_attachment(image_ref)
        session_store.set_auto_attached_image(image_ref)
        session_store.clear_current_input()
        assert session_store.current_input.prompt == ""
        assert session_store.current_input.image_attachments == []
        assert session_store.current_input.auto_attached_image is None
        assert session_store.current_input.auto_attach_disabled is False


@pytest.mark.parametrize("cap", [1, 20])
def test_windowed_caps_each_session(cap):
    state = sessions.initial_state(1.0)
    for i in range(30):
        state = sessions.append_message(
            state,
            ChatMessage(id=str(i), role="user", created_at=float(i), content=MessageContent(prompt=str(i))),
            float(i),
            max_messages=50,
        )
    assert len(sessions.windowed(state, cap).sessions[0].messages) == cap
