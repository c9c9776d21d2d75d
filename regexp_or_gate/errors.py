from typing import Optional


class OrGateError(Exception):
    """Base class for every fatal error raised by the gate"""

    stage = "gate"


class ConfigurationError(OrGateError):
    stage = "configuration"


class TransportError(OrGateError):
    stage = "fetch"

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class DecodeError(OrGateError):
    stage = "decode"


class PatternError(OrGateError):
    stage = "pattern"


class EmptyInputError(OrGateError):
    stage = "classify"


class RetriesExhaustedError(OrGateError):
    """Raised when a bounded retry loop runs out of attempts"""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class NoMatchExhaustedError(RetriesExhaustedError):
    stage = "fetch-and-filter"


class PendingExhaustedError(RetriesExhaustedError):
    stage = "evaluate"
