"""Pytest configuration and shared fixtures."""

import pytest

from synapsis_session import ChatSession, MemoryChannel, SessionConfig, SessionState


@pytest.fixture
def state():
    """Empty idle session state."""
    return SessionState()


@pytest.fixture
def channel():
    """In-memory channel for session:test."""
    return MemoryChannel("session:test")


@pytest.fixture
def session(channel):
    """Joined session bound to the in-memory channel."""
    chat = ChatSession(channel, SessionConfig())
    chat.join()
    yield chat
    chat.leave()
