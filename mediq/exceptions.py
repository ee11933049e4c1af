# mediq/exceptions.py
import enum
from typing import Optional


class ErrorCode(str, enum.Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    DATABASE_ERROR = "DATABASE_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    TEXT_TOO_LONG = "TEXT_TOO_LONG"
    VOICEVOX_NOT_AVAILABLE = "VOICEVOX_NOT_AVAILABLE"
    SYNTHESIS_FAILED = "SYNTHESIS_FAILED"


class MediQError(Exception):
    """Base error; carries the code and HTTP status rendered in the error envelope."""

    code: ErrorCode = ErrorCode.DATABASE_ERROR
    status_code: int = 500

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationFailed(MediQError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class NotFound(MediQError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class DatabaseError(MediQError):
    code = ErrorCode.DATABASE_ERROR
    status_code = 500


class Unauthorized(MediQError):
    code = ErrorCode.UNAUTHORIZED
    status_code = 401


class VoiceEngineUnavailable(MediQError):
    code = ErrorCode.VOICEVOX_NOT_AVAILABLE
    status_code = 503


class SynthesisFailed(MediQError):
    code = ErrorCode.SYNTHESIS_FAILED
    status_code = 500
