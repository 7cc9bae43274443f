"""Exception hierarchy shared by the session engine and its adapters."""

from __future__ import annotations


class QuizRoomError(Exception):
    """Base class for every error raised by the quiz session engine."""


class ValidationError(QuizRoomError, ValueError):
    """Raised when caller input is malformed or violates a session invariant."""


class NotFoundError(QuizRoomError, LookupError):
    """Raised when a session or ledger address does not exist."""


class ConflictError(QuizRoomError):
    """Raised when an operation collides with existing state."""


class SettlementError(QuizRoomError):
    """Raised when the ledger collaborator rejects or fails a result write."""


class TransientStorageError(QuizRoomError):
    """Raised by storage adapters for I/O failures that may succeed on retry."""
