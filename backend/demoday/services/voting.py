"""Ballot validation, commit and tallies.

Rules are checked in a fixed order and the first failing rule wins. A
rejected ballot is returned as a ``VoteRejection``; nothing is raised for
expected rule violations. Validation and commit for a voter run under that
voter's lock inside one transaction, and the partial unique indexes on
``vote`` back this up at the database level.
"""
from dataclasses import dataclass
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from demoday import db
from demoday.errors import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    ValidationError,
    VoteRejection,
    VoteRejectionKind,
)
from demoday.models import PrivateNote, Team, Vote
from .transaction import atomic, read_snapshot

PUBLIC_NOTE_MAX_LEN = 500
PRIVATE_NOTE_MAX_LEN = 1000
MIN_RANKING = 1
MAX_RANKING = 100


@dataclass
class VoteOutcome:
    vote: Optional[Vote] = None
    is_new: bool = False
    rejection: Optional[VoteRejection] = None

    @property
    def ok(self):
        return self.rejection is None

    def to_dict(self):
        if self.rejection is not None:
            return self.rejection.to_dict()
        return {'vote': self.vote.to_dict(), 'isNew': self.is_new}


def _require_id(value, name):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{name} must be an integer id')
    return value


def _require_note(value, max_len, name, allow_none=False):
    if value is None and allow_none:
        return None
    if not isinstance(value, str):
        raise ValidationError(f'{name} must be a string')
    if len(value) > max_len:
        raise ValidationError(f'{name} must be {max_len} characters or less')
    return value


class VotingService:
    def __init__(self, state, registry):
        self.state = state
        self.registry = registry

    # ---- rules ----

    def validate(self, voter_id, team_id, is_final_vote, team_hint=None):
        """Return the first rule the ballot breaks, or ``None``."""
        if not self.state.voting_open:
            return VoteRejection.of(VoteRejectionKind.VOTING_CLOSED)

        team = self.registry.get_team_by_id(team_id)
        if team is None:
            return VoteRejection.of(VoteRejectionKind.TEAM_NOT_FOUND)
        if not team.has_presented:
            return VoteRejection.of(VoteRejectionKind.TEAM_NOT_PRESENTED)

        try:
            voter_team_id = self.registry.get_user_team_id(voter_id)
        except NotFoundError:
            return VoteRejection.of(VoteRejectionKind.USER_NOT_FOUND)
        if team_hint is not None and team_hint != voter_team_id:
            raise ConfigurationError(
                f'Team hint {team_hint} for user {voter_id} disagrees with registry team {voter_team_id}'
            )
        if voter_team_id is not None and voter_team_id == team_id:
            return VoteRejection.of(VoteRejectionKind.SELF_VOTE_NOT_ALLOWED)

        if is_final_vote and self.has_final_vote(voter_id):
            return VoteRejection.of(VoteRejectionKind.ALREADY_VOTED_FINAL)
        return None

    # ---- commit ----

    def submit_vote(self, voter_id, team_id, is_final_vote, public_note=None, team_hint=None):
        _require_id(voter_id, 'voterId')
        _require_id(team_id, 'teamId')
        if not isinstance(is_final_vote, bool):
            raise ValidationError('isFinalVote must be a boolean')
        public_note = _require_note(public_note, PUBLIC_NOTE_MAX_LEN, 'publicNote', allow_none=True)
        if team_hint is not None:
            _require_id(team_hint, 'teamHint')

        with self.state.voter_locks.hold(voter_id):
            try:
                with atomic() as session:
                    rejection = self.validate(voter_id, team_id, is_final_vote, team_hint=team_hint)
                    if rejection is not None:
                        current_app.logger.info(
                            f"[vote-reject] voter={voter_id} team={team_id} final={is_final_vote} kind={rejection.kind.value}"
                        )
                        return VoteOutcome(rejection=rejection)

                    draft = Vote.query.filter_by(user_id=voter_id, team_id=team_id, is_final_vote=False).first()
                    is_new = draft is None
                    vote = draft or Vote(user_id=voter_id, team_id=team_id)
                    vote.is_final_vote = is_final_vote
                    vote.public_note = public_note
                    vote.submitted_at = self.state.now()
                    session.add(vote)
                    session.flush()
            except IntegrityError as exc:
                # Another writer got in first (e.g. a second process)
                if is_final_vote:
                    current_app.logger.warning(f"[vote-reject] voter={voter_id} final vote raced: {exc.orig}")
                    return VoteOutcome(rejection=VoteRejection.of(VoteRejectionKind.ALREADY_VOTED_FINAL))
                raise ConflictError(f'Concurrent draft vote for user {voter_id} and team {team_id}') from exc

        current_app.logger.info(
            f"[vote-commit] voter={voter_id} team={team_id} final={is_final_vote} new={is_new} vote={vote.id}"
        )
        return VoteOutcome(vote=vote, is_new=is_new)

    # ---- tallies ----

    def vote_count(self, team_id):
        return read_snapshot(
            lambda: Vote.query.filter_by(team_id=team_id, is_final_vote=True).count()
        )

    def has_final_vote(self, voter_id):
        return Vote.query.filter_by(user_id=voter_id, is_final_vote=True).first() is not None

    def final_vote_team_id(self, voter_id):
        vote = Vote.query.filter_by(user_id=voter_id, is_final_vote=True).first()
        return vote.team_id if vote else None

    def get_user_votes(self, voter_id):
        _require_id(voter_id, 'voterId')
        return read_snapshot(
            lambda: Vote.query.filter_by(user_id=voter_id)
            .order_by(Vote.submitted_at.desc(), Vote.id.desc())
            .all()
        )

    # ---- private notes ----

    def update_private_note(self, voter_id, team_id, note, ranking):
        _require_id(voter_id, 'voterId')
        _require_id(team_id, 'teamId')
        note = _require_note(note, PRIVATE_NOTE_MAX_LEN, 'note')
        if isinstance(ranking, bool) or not isinstance(ranking, int):
            raise ValidationError('ranking must be an integer')
        if ranking < MIN_RANKING or ranking > MAX_RANKING:
            raise ValidationError(f'ranking must be between {MIN_RANKING} and {MAX_RANKING}')

        with self.state.voter_locks.hold(voter_id):
            try:
                with atomic() as session:
                    if self.registry.get_user(voter_id) is None:
                        raise NotFoundError(f'User {voter_id} not found')
                    if self.registry.get_team_by_id(team_id) is None:
                        raise NotFoundError('Team not found')
                    row = PrivateNote.query.filter_by(user_id=voter_id, team_id=team_id).first()
                    if row is None:
                        row = PrivateNote(user_id=voter_id, team_id=team_id)
                    row.note = note
                    row.ranking = ranking
                    row.updated_at = self.state.now()
                    session.add(row)
                    session.flush()
            except IntegrityError as exc:
                raise ConflictError(f'Concurrent note update for user {voter_id} and team {team_id}') from exc
        return row

    def get_user_rankings(self, voter_id):
        """The voter's private ordering of presented teams, plus their final pick."""
        _require_id(voter_id, 'voterId')

        def _load():
            if self.registry.get_user(voter_id) is None:
                raise NotFoundError(f'User {voter_id} not found')
            teams = Team.query.filter_by(has_presented=True).all()
            notes = {n.team_id: n for n in PrivateNote.query.filter_by(user_id=voter_id).all()}
            voted = {team_id for (team_id,) in db.session.query(Vote.team_id).filter(Vote.user_id == voter_id).all()}
            return teams, notes, voted, self.final_vote_team_id(voter_id)

        teams, notes, voted, final_team_id = read_snapshot(_load)
        rankings = []
        for team in teams:
            note = notes.get(team.id)
            rankings.append({
                'teamId': team.id,
                'teamName': team.name,
                'ranking': note.ranking if note else 0,
                'note': note.note if note else '',
                'hasVoted': team.id in voted,
            })
        rankings.sort(key=lambda r: (-r['ranking'], r['teamName']))
        return {'rankings': rankings, 'finalVoteTeamId': final_team_id}
