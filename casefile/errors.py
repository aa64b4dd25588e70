from typing import Optional


class CasefileError(Exception):
    """Base class for casefile domain errors."""


class ScriptNotFoundError(CasefileError):
    def __init__(self, case_type):
        self.case_type = case_type
        super().__init__(f"No script registered for case type: {case_type}")


class InsufficientResourceError(CasefileError):
    """Raised by callers when the economy refuses a debit."""

    def __init__(self, resource: str, needed: Optional[int] = None):
        self.resource = resource
        self.needed = needed
        detail = f"Not enough {resource}"
        if needed is not None:
            detail += f" (needs {needed})"
        super().__init__(detail)


class SessionNotAlignedError(CasefileError):
    def __init__(self, expected: int, replayed: int):
        self.expected = expected
        self.replayed = replayed
        super().__init__(
            f"Resume replay advanced {replayed} of {expected} beats; engine cursor is out of step with the snapshot"
        )


class NoActiveCaseError(CasefileError):
    def __init__(self, message: str = "No active case session"):
        super().__init__(message)


class EmptyQuestionError(CasefileError):
    def __init__(self, message: str = "Question text is empty"):
        super().__init__(message)
