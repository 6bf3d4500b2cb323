"""Exceptions raised by the triage engine."""


class TriageError(Exception):
    """Base class for triage engine errors."""


class UnknownSubjectError(TriageError, KeyError):
    """A reading arrived for a subject with no registered normal ranges."""

    def __init__(self, subject_id: str):
        super().__init__(subject_id)
        self.subject_id = subject_id

    def __str__(self) -> str:
        return f"subject {self.subject_id!r} is not registered"
