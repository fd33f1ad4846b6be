import json
from unittest.mock import MagicMock

import pytest
import requests
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from support_chat.store import ChatStore


def make_response(status_code=200, payload=None, raw=None):
    response = requests.Response()
    response.status_code = status_code
    if raw is not None:
        response._content = raw
    else:
        response._content = json.dumps(payload if payload is not None else {}).encode("utf-8")
    return response


def gemini_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


@pytest.fixture
def metrics():
    return MagicMock()


@pytest.fixture
def http():
    session = MagicMock()
    session.post.return_value = make_response(200, gemini_payload("Hello there"))
    return session


@pytest.fixture
def engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def store(engine):
    chat_store = ChatStore(engine)
    chat_store.create_tables()
    return chat_store
