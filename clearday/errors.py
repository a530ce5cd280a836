"""
Failure taxonomy for calls to the AI chat capability.

All of these are absorbed by the insight service and turned into fallback
results; the mode decides which fallback values are used.
"""

import enum


class FailureMode(str, enum.Enum):
    UNAVAILABLE = "unavailable"  # capability not configured / not loaded
    CALL_FAILURE = "call_failure"  # network, remote error, or deadline expiry
    MALFORMED = "malformed"  # replied, but nothing usable in the reply


class AIServiceError(Exception):
    mode: FailureMode = FailureMode.CALL_FAILURE


class ServiceUnavailableError(AIServiceError):
    mode = FailureMode.UNAVAILABLE


class CallFailureError(AIServiceError):
    mode = FailureMode.CALL_FAILURE


class MalformedResponseError(AIServiceError):
    mode = FailureMode.MALFORMED
