"""
Chat timeline and named sessions.

`SessionStore` hydrates from the key/value store on construction, applies
every mutation through one of the reducer functions below and persists the
result right after. Reducers never touch their input; they work on a deep
copy and return it.

Persistence is best effort. When the store is over quota the message window
is shrunk (full cap, then the reduced cap, then no history at all) and the
failure is logged. It is never raised to the caller, and the in-memory state
always keeps the newest entry.
"""
from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from config import (
    CHAT_MAX_MESSAGES,
    CHAT_MAX_SESSIONS,
    CHAT_REDUCED_MESSAGES,
    DEFAULT_SESSION_NAME,
    SESSIONS_STORAGE_KEY,
)
from images import ImageFetchError, url_to_image_reference
from schema_helpers import accepts_image_input
from schemas import (
    ChatMessage,
    ChatSession,
    CurrentInput,
    GenerationStatus,
    ImageReference,
    MessageContent,
    MessageRole,
    ModelConfig,
    SessionsState,
)
from storage import KeyValueStore, StorageQuotaExceeded

logger = logging.getLogger("sessions")

ImageConverter = Callable[[str], Awaitable[ImageReference]]


def _new_id() -> str:
    return str(uuid.uuid4())


# ─── Reducers ─────────────────────────────────────────────────────────────────

def new_session(name: str, now: float) -> ChatSession:
    return ChatSession(id=_new_id(), name=name, created_at=now, updated_at=now)


def initial_state(now: float) -> SessionsState:
    session = new_session(DEFAULT_SESSION_NAME, now)
    return SessionsState(sessions=[session], current_session_id=session.id)


def _find(state: SessionsState, session_id: Optional[str]) -> Optional[ChatSession]:
    for session in state.sessions:
        if session.id == session_id:
            return session
    return None


def create_session(state: SessionsState, now: float, max_sessions: int = CHAT_MAX_SESSIONS) -> SessionsState:
    state = state.model_copy(deep=True)
    session = new_session(f"Chat {len(state.sessions) + 1}", now)
    state.sessions.append(session)
    state.current_session_id = session.id
    if len(state.sessions) > max_sessions:
        state.sessions = state.sessions[-max_sessions:]
    return state


def switch_session(state: SessionsState, session_id: str) -> SessionsState:
    if _find(state, session_id) is None:
        return state
    state = state.model_copy(deep=True)
    state.current_session_id = session_id
    return state


def rename_session(state: SessionsState, session_id: str, name: str, now: float) -> SessionsState:
    state = state.model_copy(deep=True)
    session = _find(state, session_id)
    if session is not None:
        session.name = name
        session.updated_at = now
    return state


def delete_session(state: SessionsState, session_id: str, now: float) -> SessionsState:
    """Remove a session. The list is never left empty."""
    state = state.model_copy(deep=True)
    state.sessions = [s for s in state.sessions if s.id != session_id]
    if not state.sessions:
        return initial_state(now)
    if state.current_session_id == session_id or _find(state, state.current_session_id) is None:
        state.current_session_id = state.sessions[0].id
    return state


def clear_session(state: SessionsState, session_id: Optional[str], now: float) -> SessionsState:
    state = state.model_copy(deep=True)
    session = _find(state, session_id)
    if session is not None:
        session.messages = []
        session.updated_at = now
    return state


def append_message(
    state: SessionsState,
    message: ChatMessage,
    now: float,
    max_messages: int = CHAT_MAX_MESSAGES,
) -> SessionsState:
    state = state.model_copy(deep=True)
    session = _find(state, state.current_session_id)
    if session is not None:
        session.messages.append(message)
        if len(session.messages) > max_messages:
            session.messages = session.messages[-max_messages:]
        session.updated_at = now
    return state


def update_message(state: SessionsState, message_id: str, updates: dict[str, Any]) -> SessionsState:
    """Merge `updates` into an assistant message's content, in whichever session holds it."""
    state = state.model_copy(deep=True)
    for session in state.sessions:
        for i, message in enumerate(session.messages):
            if message.id != message_id:
                continue
            if message.role != MessageRole.assistant:
                return state
            content = MessageContent.model_validate({**message.content.model_dump(), **updates})
            session.messages[i] = message.model_copy(update={"content": content})
            return state
    return state


def delete_message(state: SessionsState, message_id: str) -> SessionsState:
    state = state.model_copy(deep=True)
    for session in state.sessions:
        session.messages = [m for m in session.messages if m.id != message_id]
    return state


def windowed(state: SessionsState, max_messages: int) -> SessionsState:
    """Copy of `state` keeping at most the newest `max_messages` per session."""
    state = state.model_copy(deep=True)
    for session in state.sessions:
        session.messages = session.messages[-max_messages:] if max_messages > 0 else []
    return state


def last_generated_image(messages: list[ChatMessage]) -> Optional[str]:
    """First output of the newest succeeded, non-video, image-bearing assistant message."""
    for message in reversed(messages):
        content = message.content
        if (
            message.role == MessageRole.assistant
            and content.status == GenerationStatus.succeeded
            and content.generated_images
            and not content.is_video
        ):
            return content.generated_images[0]
    return None


# ─── Store ────────────────────────────────────────────────────────────────────

class SessionStore:
    def __init__(
        self,
        kv: KeyValueStore,
        *,
        key: str = SESSIONS_STORAGE_KEY,
        max_messages: int = CHAT_MAX_MESSAGES,
        reduced_messages: int = CHAT_REDUCED_MESSAGES,
        max_sessions: int = CHAT_MAX_SESSIONS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._kv = kv
        self._key = key
        self._max_messages = max_messages
        self._reduced_messages = reduced_messages
        self._max_sessions = max_sessions
        self._clock = clock
        self.current_input = CurrentInput()
        self.state = self._load()

    # ─── Persistence ──────────────────────────────────────────────────────────

    def _load(self) -> SessionsState:
        try:
            raw = self._kv.load(self._key)
        except (sqlite3.Error, ValueError) as exc:
            logger.warning("could not read sessions, starting fresh: %s", exc)
            raw = None
        if raw is None:
            return initial_state(self._clock())
        try:
            state = SessionsState.model_validate(raw)
        except ValidationError as exc:
            logger.warning("stored sessions are malformed, starting fresh: %s", exc)
            return initial_state(self._clock())
        if not state.sessions:
            return initial_state(self._clock())
        if _find(state, state.current_session_id) is None:
            state.current_session_id = state.sessions[0].id
        return state

    def _persist(self) -> None:
        for cap in (self._max_messages, self._reduced_messages, 0):
            payload = windowed(self.state, cap).model_dump(mode="json")
            try:
                self._kv.save(self._key, payload)
            except StorageQuotaExceeded as exc:
                logger.warning("session storage over quota at %d messages per session: %s", cap, exc)
                continue
            except sqlite3.Error as exc:
                logger.warning("failed to persist sessions: %s", exc)
                return
            if cap != self._max_messages:
                logger.warning("sessions persisted with history reduced to %d messages", cap)
            return
        logger.warning("sessions could not be persisted even without history")

    def _apply(self, reducer: Callable[..., SessionsState], *args: Any) -> None:
        self.state = reducer(self.state, *args)
        self._persist()

    # ─── Sessions ─────────────────────────────────────────────────────────────

    @property
    def sessions(self) -> list[ChatSession]:
        return self.state.sessions

    @property
    def current_session_id(self) -> Optional[str]:
        return self.state.current_session_id

    @property
    def current_session(self) -> Optional[ChatSession]:
        return _find(self.state, self.state.current_session_id)

    @property
    def messages(self) -> list[ChatMessage]:
        session = self.current_session
        return list(session.messages) if session is not None else []

    def create_session(self) -> ChatSession:
        self._apply(create_session, self._clock(), self._max_sessions)
        return self.current_session

    def switch_session(self, session_id: str) -> bool:
        if _find(self.state, session_id) is None:
            return False
        self._apply(switch_session, session_id)
        return True

    def rename_session(self, session_id: str, name: str) -> None:
        self._apply(rename_session, session_id, name, self._clock())

    def delete_session(self, session_id: str) -> None:
        self._apply(delete_session, session_id, self._clock())

    def clear_current_session(self) -> None:
        self._apply(clear_session, self.state.current_session_id, self._clock())

    # ─── Messages ─────────────────────────────────────────────────────────────

    def _append(self, role: MessageRole, content: MessageContent, message_id: Optional[str] = None) -> ChatMessage:
        now = self._clock()
        message = ChatMessage(id=message_id or _new_id(), role=role, created_at=now, content=content)
        self._apply(append_message, message, now, self._max_messages)
        return message

    def add_user_message(self, content: MessageContent) -> ChatMessage:
        return self._append(MessageRole.user, content)

    def add_assistant_message(self, content: MessageContent, message_id: Optional[str] = None) -> ChatMessage:
        return self._append(MessageRole.assistant, content, message_id)

    def add_system_message(self, text: str) -> ChatMessage:
        return self._append(MessageRole.system, MessageContent(text=text))

    def find_message(self, message_id: str) -> Optional[ChatMessage]:
        for session in self.state.sessions:
            for message in session.messages:
                if message.id == message_id:
                    return message
        return None

    def update_message(self, message_id: str, **updates: Any) -> Optional[ChatMessage]:
        self._apply(update_message, message_id, updates)
        return self.find_message(message_id)

    def delete_message(self, message_id: str) -> None:
        self._apply(delete_message, message_id)

    # ─── Current input ────────────────────────────────────────────────────────

    def set_prompt(self, prompt: str) -> None:
        self.current_input.prompt = prompt

    def add_attachment(self, image: ImageReference) -> None:
        self.current_input.image_attachments.append(image)

    def remove_attachment(self, index: int) -> None:
        if 0 <= index < len(self.current_input.image_attachments):
            del self.current_input.image_attachments[index]

    def set_auto_attached_image(self, image: Optional[ImageReference]) -> None:
        self.current_input.auto_attached_image = image

    def set_auto_attach_disabled(self, disabled: bool) -> None:
        self.current_input.auto_attach_disabled = disabled

    def dismiss_auto_attach(self) -> None:
        """User removed the auto-attached image; keep it off until the next success."""
        self.current_input.auto_attached_image = None
        self.current_input.auto_attach_disabled = True

    def clear_current_input(self) -> None:
        # the dismissal survives; only a successful generation re-enables it
        self.current_input = CurrentInput(auto_attach_disabled=self.current_input.auto_attach_disabled)

    # ─── Auto-attach ──────────────────────────────────────────────────────────

    def last_generated_image(self) -> Optional[str]:
        return last_generated_image(self.messages)

    def auto_attach_candidate(self, model: Optional[ModelConfig]) -> Optional[str]:
        if model is None or self.current_input.auto_attach_disabled:
            return None
        if not accepts_image_input(model):
            return None
        return self.last_generated_image()

    async def refresh_auto_attach(
        self,
        model: Optional[ModelConfig],
        converter: ImageConverter = url_to_image_reference,
    ) -> Optional[ImageReference]:
        """Convert the current candidate into an image reference and attach it."""
        candidate = self.auto_attach_candidate(model)
        if candidate is None:
            if not self.current_input.auto_attach_disabled:
                self.current_input.auto_attached_image = None
            return None
        try:
            image = await converter(candidate)
        except (ImageFetchError, ValueError) as exc:
            logger.warning("failed to convert auto-attached image: %s", exc)
            self.current_input.auto_attached_image = None
            return None
        # the user may have dismissed it, or a newer result arrived, while converting
        if self.auto_attach_candidate(model) != candidate:
            logger.info("auto-attach candidate changed during conversion, dropping %s", candidate)
            return None
        self.current_input.auto_attached_image = image
        return image
