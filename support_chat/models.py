from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum
import uuid


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SupportType(str, Enum):
    TUTORING = "tutoring"
    GENERAL = "general"
    ASSIGNMENT = "assignment"
    RESEARCH_PAPER = "research_paper"
    LEARNING_PATH = "learning_path"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["SupportType"]:
        try:
            return cls(value)
        except ValueError:
            return None


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Profile(SQLModel, table=True):
    __tablename__ = "profiles"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True, unique=True)
    full_name: Optional[str] = Field(default=None)
    grade_level: Optional[str] = Field(default=None)
    subjects: List[str] = Field(default_factory=list, sa_column=Column(JSON))


class ChatSession(SQLModel, table=True):
    __tablename__ = "chat_sessions"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(index=True)
    support_type: SupportType # fixed for the lifetime of the session
    title: str
    subject: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)


class ChatMessage(SQLModel, table=True):
    __tablename__ = "chat_messages"

    id: str = Field(default_factory=new_id, primary_key=True)
    session_id: str = Field(foreign_key="chat_sessions.id", index=True)
    role: MessageRole # user | assistant
    content: str
    created_at: datetime = Field(default_factory=utcnow)
