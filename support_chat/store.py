from typing import List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, Session, select, and_

from support_chat.models import ChatSession, ChatMessage, Profile, SupportType, MessageRole

logger = logging.getLogger("support_chat.store")


class StoreError(Exception):
    pass


class SessionNotFound(StoreError):
    def __init__(self, session_id: str):
        super().__init__(f"Chat session {session_id} does not exist")
        self.session_id = session_id


class ChatStore:
    """Row-filtered access to profiles, chat sessions and chat messages."""

    def __init__(self, engine):
        self.engine = engine

    def create_tables(self):
        SQLModel.metadata.create_all(self.engine)

    def get_profile(self, user_id: str) -> Optional[Profile]:
        with Session(self.engine) as session:
            return session.exec(select(Profile).where(Profile.user_id == user_id)).first()

    def recent_sessions(self, user_id: str, limit: int = 5) -> List[ChatSession]:
        with Session(self.engine) as session:
            return session.exec(
                select(ChatSession)
                .where(ChatSession.user_id == user_id)
                .order_by(ChatSession.created_at.desc())
                .limit(limit)
            ).all()

    def create_session(
        self,
        user_id: str,
        support_type: SupportType,
        title: str,
        subject: Optional[str] = None,
    ) -> ChatSession:
        chat_session = ChatSession(
            user_id=user_id,
            support_type=support_type,
            title=title,
            subject=subject,
        )
        try:
            with Session(self.engine) as session:
                session.add(chat_session)
                session.commit()
                session.refresh(chat_session)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to create chat session") from exc

        logger.info("Created chat session %s (%s) for user %s", chat_session.id, support_type.value, user_id)
        return chat_session

    def get_session(self, session_id: str, user_id: str) -> Optional[ChatSession]:
        try:
            with Session(self.engine) as session:
                return session.exec(
                    select(ChatSession).where(and_(ChatSession.id == session_id, ChatSession.user_id == user_id))
                ).first()
        except SQLAlchemyError as exc:
            raise StoreError("Failed to load chat session") from exc

    def list_messages(self, session_id: str, user_id: Optional[str] = None) -> List[ChatMessage]:
        """Messages of a session, oldest first.

        With ``user_id`` only a session owned by that user yields messages.
        """
        query = select(ChatMessage).where(ChatMessage.session_id == session_id)
        if user_id is not None:
            query = query.join(ChatSession, ChatSession.id == ChatMessage.session_id).where(
                ChatSession.user_id == user_id
            )
        try:
            with Session(self.engine) as session:
                return session.exec(query.order_by(ChatMessage.created_at)).all()
        except SQLAlchemyError as exc:
            raise StoreError("Failed to load chat messages") from exc

    def add_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str,
        user_id: Optional[str] = None,
    ) -> ChatMessage:
        try:
            with Session(self.engine) as session:
                chat_session = session.get(ChatSession, session_id)
                if chat_session is None or (user_id is not None and chat_session.user_id != user_id):
                    raise SessionNotFound(session_id)

                record = ChatMessage(session_id=session_id, role=role, content=content)
                session.add(record)
                session.commit()
                session.refresh(record)
        except SQLAlchemyError as exc:
            raise StoreError("Failed to save chat message") from exc
        return record
