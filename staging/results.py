"""
Tagged results for staging operations.

Expected outcomes (unknown id, unpublished parent, bad date) come back as a
failed StagingResult instead of an exception; views map the error code to
an HTTP status.
"""
from dataclasses import dataclass
from typing import Any, Optional

NOT_FOUND = 'not_found'
NOT_PUBLISHED = 'not_published'
INVALID_DATE = 'invalid_date'
INVALID_STATE = 'invalid_state'
MERGE_FAILED = 'merge_failed'
SCHEDULE_FAILED = 'schedule_failed'

HTTP_STATUS = {
    NOT_FOUND: 404,
    NOT_PUBLISHED: 400,
    INVALID_DATE: 400,
    INVALID_STATE: 409,
    MERGE_FAILED: 500,
    SCHEDULE_FAILED: 500,
}


@dataclass(frozen=True)
class StagingError:
    code: str
    message: str

    @property
    def http_status(self):
        return HTTP_STATUS.get(self.code, 400)


@dataclass(frozen=True)
class StagingResult:
    ok: bool
    value: Any = None
    error: Optional[StagingError] = None

    @classmethod
    def success(cls, value=None):
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, code, message):
        return cls(ok=False, error=StagingError(code, message))

    @classmethod
    def not_found(cls, message='Invalid staged revision.'):
        return cls.failure(NOT_FOUND, message)
