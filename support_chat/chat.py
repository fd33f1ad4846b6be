import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

import requests

from support_chat.models import ChatMessage, MessageRole, SupportType
from support_chat.config import Settings
from support_chat.prompts import SUPPORT_PLACEHOLDERS, SUPPORT_TITLES
from support_chat.store import ChatStore, StoreError

logger = logging.getLogger("support_chat.chat")

HISTORY_WINDOW = 10

SEND_FAILED = "Failed to send message. Please try again."


class ProxyError(Exception):
    pass


class ProxyClient:
    """Calls the ``/gemini-chat`` proxy on behalf of a signed-in user."""

    def __init__(self, base_url: str, access_token: str, http: Optional[requests.Session] = None):
        self.endpoint = f"{base_url.rstrip('/')}/gemini-chat"
        self.access_token = access_token
        self.http = http or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings, access_token: str, http: Optional[requests.Session] = None) -> "ProxyClient":
        return cls(settings.proxy_url, access_token, http=http)

    def complete(
        self,
        message: str,
        support_type: SupportType,
        history: List[Dict],
        subject: Optional[str] = None,
    ) -> str:
        body = {
            "message": message,
            "supportType": support_type.value,
            "sessionHistory": history,
        }
        if subject:
            body["subject"] = subject

        try:
            response = self.http.post(
                self.endpoint,
                json=body,
                headers={"Authorization": f"Bearer {self.access_token}"},
            )
        except requests.exceptions.RequestException as exc:
            raise ProxyError("Failed to reach the chat service") from exc

        if not response.ok:
            raise ProxyError("Failed to get AI response")

        try:
            return response.json()["response"]
        except (ValueError, KeyError, TypeError) as exc:
            raise ProxyError("Malformed response from the chat service") from exc


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING_EXISTING = "loading-existing"
    CREATING_NEW = "creating-new"
    READY = "ready"


class MessageState(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class LocalMessage:
    role: MessageRole
    content: str
    id: str = field(default_factory=lambda: f"temp-{uuid.uuid4()}")
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: MessageState = MessageState.PENDING

    @classmethod
    def from_record(cls, record: ChatMessage) -> "LocalMessage":
        return cls(
            role=record.role,
            content=record.content,
            id=record.id,
            created_at=record.created_at,
            state=MessageState.CONFIRMED,
        )

    def confirm(self, record: ChatMessage):
        self.id = record.id
        self.created_at = record.created_at
        self.state = MessageState.CONFIRMED

    def as_history(self) -> Dict:
        return {"role": self.role.value, "content": self.content}


def session_title(support_type: SupportType, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{SUPPORT_TITLES[support_type]} Session - {today.month}/{today.day}/{today.year}"


def log_notification(title: str, description: str):
    logger.warning("%s: %s", title, description)


class ChatController:
    """Drives one chat conversation: session lifecycle and the send flow.

    Every local message carries a state. A user message is ``pending`` until
    the store accepts it, then ``confirmed`` with the stored id; if the store
    refuses it the entry is removed again. An assistant reply that could not be
    stored stays visible as ``failed``.

    A conversation whose last stored message is a user turn is awaiting a
    reply. That happens when the proxy call fails after the user turn was
    stored; ``retry_reply`` asks for the missing reply without storing the
    user turn a second time.
    """

    def __init__(
        self,
        store: ChatStore,
        proxy: ProxyClient,
        user_id: str,
        support_type: SupportType,
        session_id: Optional[str] = None,
        subject: Optional[str] = None,
        notify: Callable[[str, str], None] = log_notification,
    ):
        self.store = store
        self.proxy = proxy
        self.user_id = user_id
        self.support_type = SupportType(support_type)
        self.session_id = session_id
        self.subject = subject
        self.notify = notify

        self.state = SessionState.UNINITIALIZED
        self.title = ""
        self.messages: List[LocalMessage] = []
        self.loading = False

    def open(self):
        if self.session_id:
            self.load_existing_session()
        else:
            self.create_new_session()

    def load_existing_session(self):
        self.state = SessionState.LOADING_EXISTING
        try:
            chat_session = self.store.get_session(self.session_id, self.user_id)
            if chat_session is None:
                # unknown or foreign session: show nothing, write nothing
                logger.info("Session %s not found for user %s", self.session_id, self.user_id)
                self.session_id = None
                self.title = ""
                self.messages = []
            else:
                self.title = chat_session.title
                self.subject = chat_session.subject
                self.support_type = chat_session.support_type
                records = self.store.list_messages(chat_session.id, user_id=self.user_id)
                self.messages = [LocalMessage.from_record(record) for record in records]
        except StoreError:
            logger.exception("Error loading session %s", self.session_id)
            self.notify("Error", "Failed to load chat session")
        self.state = SessionState.READY

    def create_new_session(self):
        self.state = SessionState.CREATING_NEW
        title = session_title(self.support_type)
        try:
            chat_session = self.store.create_session(self.user_id, self.support_type, title, subject=self.subject)
        except StoreError:
            logger.exception("Error creating session for user %s", self.user_id)
            self.notify("Error", "Failed to create chat session")
            self.state = SessionState.UNINITIALIZED
            return

        self.session_id = chat_session.id
        self.title = title
        self.state = SessionState.READY

    @property
    def placeholder(self) -> str:
        return SUPPORT_PLACEHOLDERS[self.support_type]

    @property
    def awaiting_reply(self) -> bool:
        confirmed = [m for m in self.messages if m.state is MessageState.CONFIRMED]
        return bool(confirmed) and confirmed[-1].role is MessageRole.USER

    def history(self, before: Optional[LocalMessage] = None) -> List[Dict]:
        earlier = self.messages
        if before is not None:
            earlier = earlier[: self.messages.index(before)]
        return [m.as_history() for m in earlier if m.state is MessageState.CONFIRMED][-HISTORY_WINDOW:]

    def send(self, text: str) -> Optional[LocalMessage]:
        """Send a user turn and return the assistant reply, if one arrived.

        A no-op while another send is in flight, before a session exists, or
        for blank text.
        """
        content = (text or "").strip()
        if not content or not self.session_id or self.loading:
            return None

        self.loading = True
        try:
            user_message = LocalMessage(role=MessageRole.USER, content=content)
            self.messages.append(user_message)

            try:
                record = self.store.add_message(self.session_id, MessageRole.USER, content, user_id=self.user_id)
            except StoreError:
                logger.exception("Error saving user message in session %s", self.session_id)
                self.messages.remove(user_message)
                self.notify("Error", SEND_FAILED)
                return None
            user_message.confirm(record)

            return self._complete_turn(user_message)
        finally:
            self.loading = False

    def retry_reply(self) -> Optional[LocalMessage]:
        if self.loading or not self.session_id or not self.awaiting_reply:
            return None

        self.loading = True
        try:
            confirmed = [m for m in self.messages if m.state is MessageState.CONFIRMED]
            return self._complete_turn(confirmed[-1])
        finally:
            self.loading = False

    def _complete_turn(self, user_message: LocalMessage) -> Optional[LocalMessage]:
        try:
            reply = self.proxy.complete(
                user_message.content,
                self.support_type,
                self.history(before=user_message),
                subject=self.subject,
            )
        except ProxyError:
            logger.exception("Error getting a reply in session %s", self.session_id)
            self.notify("Error", SEND_FAILED)
            return None

        assistant_message = LocalMessage(role=MessageRole.ASSISTANT, content=reply)
        self.messages.append(assistant_message)

        try:
            record = self.store.add_message(self.session_id, MessageRole.ASSISTANT, reply, user_id=self.user_id)
        except StoreError:
            logger.exception("Error saving assistant reply in session %s", self.session_id)
            assistant_message.state = MessageState.FAILED
            self.notify("Error", SEND_FAILED)
            return assistant_message

        assistant_message.confirm(record)
        return assistant_message
