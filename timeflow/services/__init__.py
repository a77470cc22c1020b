"""Persistence services: key-value backends, retries and timer session storage."""

from timeflow.services.retry_handler import (
    CircuitBreakerError,
    RetryExhaustedException,
    RetryHandler,
)
from timeflow.services.session_store import SESSION_KEY, SessionStore
from timeflow.services.storage import InMemoryStore, JsonFileStore, KeyValueStore

__all__ = [
    "CircuitBreakerError",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "RetryExhaustedException",
    "RetryHandler",
    "SESSION_KEY",
    "SessionStore",
]
