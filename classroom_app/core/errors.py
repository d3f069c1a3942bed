"""Exception types raised by the classroom services."""

from __future__ import annotations


class ClassroomError(Exception):
    """Base class for errors surfaced to the user."""


class NotFoundError(ClassroomError):
    """A referenced quiz, assignment, submission or student does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} '{identifier}' was not found.")
        self.kind = kind
        self.identifier = identifier


class ValidationFailure(ClassroomError, ValueError):
    """Input was rejected before anything was written."""


class CollaboratorFailure(ClassroomError):
    """A read or write against the document or blob store failed."""
