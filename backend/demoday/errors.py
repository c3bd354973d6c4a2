"""Error taxonomy for the coordination core.

Unexpected failures are raised as ``CoordinationError`` subclasses. Expected
business-rule rejections of a ballot are *returned* as ``VoteRejection``
values so callers can map the stable ``kind`` to a precise response.
"""
from dataclasses import dataclass
from enum import Enum


class CoordinationError(Exception):
    status_code = 500
    code = 'INTERNAL_ERROR'

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class ValidationError(CoordinationError):
    """Malformed input, e.g. an out-of-range timer duration."""
    status_code = 400
    code = 'VALIDATION_ERROR'


class NotFoundError(CoordinationError):
    status_code = 404
    code = 'NOT_FOUND'


class ConflictError(CoordinationError):
    status_code = 409
    code = 'CONFLICT'


class InternalError(CoordinationError):
    """Stored state is inconsistent (e.g. two current presentations)."""


class ConfigurationError(InternalError):
    code = 'CONFIGURATION_ERROR'


class TransientError(CoordinationError):
    """Backing store unavailable. Safe to retry reads; writes are never retried here."""
    status_code = 503
    code = 'TRANSIENT_ERROR'


class VoteRejectionKind(str, Enum):
    VOTING_CLOSED = 'VOTING_CLOSED'
    TEAM_NOT_FOUND = 'TEAM_NOT_FOUND'
    TEAM_NOT_PRESENTED = 'TEAM_NOT_PRESENTED'
    USER_NOT_FOUND = 'USER_NOT_FOUND'
    SELF_VOTE_NOT_ALLOWED = 'SELF_VOTE_NOT_ALLOWED'
    ALREADY_VOTED_FINAL = 'ALREADY_VOTED_FINAL'


REJECTION_MESSAGES = {
    VoteRejectionKind.VOTING_CLOSED: 'Voting is currently closed',
    VoteRejectionKind.TEAM_NOT_FOUND: 'Team not found',
    VoteRejectionKind.TEAM_NOT_PRESENTED: 'Team has not presented yet',
    VoteRejectionKind.USER_NOT_FOUND: 'User not found',
    VoteRejectionKind.SELF_VOTE_NOT_ALLOWED: 'You cannot vote for your own team',
    VoteRejectionKind.ALREADY_VOTED_FINAL: 'You have already cast your final vote',
}

REJECTION_STATUS = {
    VoteRejectionKind.VOTING_CLOSED: 403,
    VoteRejectionKind.TEAM_NOT_FOUND: 404,
    VoteRejectionKind.TEAM_NOT_PRESENTED: 400,
    VoteRejectionKind.USER_NOT_FOUND: 404,
    VoteRejectionKind.SELF_VOTE_NOT_ALLOWED: 403,
    VoteRejectionKind.ALREADY_VOTED_FINAL: 409,
}


@dataclass(frozen=True)
class VoteRejection:
    """A ballot refused by a voting rule."""

    kind: VoteRejectionKind
    message: str

    @classmethod
    def of(cls, kind):
        return cls(kind=kind, message=REJECTION_MESSAGES[kind])

    @property
    def status_code(self):
        return REJECTION_STATUS[self.kind]

    def to_dict(self):
        return {'error': self.message, 'code': self.kind.value}
