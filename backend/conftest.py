"""Shared fixtures: in-memory database, scripted AI transport, no-wait retries."""
import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from erp_agent.db.init_db import init_db
from erp_agent.db.session import make_engine
from erp_ai.ai_service import AIService
from erp_ai.exceptions import AIResponseError
from erp_ai.groq_client import ChatTransport
from erp_ai.retry import RetryPolicy


class FakeTransport(ChatTransport):
    """Scripted chat transport.

    Replies are consumed in order; an exception in the script is raised
    instead of returned. ``fail_with`` makes every call raise. Calls are
    recorded for assertions.
    """

    def __init__(self, replies=None, available=True, fail_with=None):
        self.replies = list(replies or [])
        self.available = available
        self.fail_with = fail_with
        self.calls = []

    def is_available(self):
        return self.available

    def complete(self, messages, *, timeout, temperature=0.7, max_tokens=2000, top_p=0.9):
        self.calls.append({
            "messages": messages,
            "timeout": timeout,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.fail_with is not None:
            raise self.fail_with
        if not self.replies:
            raise AIResponseError("no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_ai(sleeps):
    """Build an AIService over a FakeTransport; returns (service, transport)."""

    def _make(replies=None, available=True, fail_with=None):
        transport = FakeTransport(replies, available=available, fail_with=fail_with)
        service = AIService(transport=transport, retry=RetryPolicy(max_attempts=3, base_delay=1.0, sleep=sleeps.append))
        return service, transport

    return _make
