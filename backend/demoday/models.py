from datetime import datetime, timezone

from demoday import db


PRESENTATION_UPCOMING = 'upcoming'
PRESENTATION_CURRENT = 'current'
PRESENTATION_COMPLETED = 'completed'
PRESENTATION_STATUSES = (PRESENTATION_UPCOMING, PRESENTATION_CURRENT, PRESENTATION_COMPLETED)

TIMER_ROW_ID = 'global'


def utcnow():
    """Naive UTC timestamp; every stored datetime uses this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat() + 'Z' if value else None


class Team(db.Model):
    __tablename__ = 'team'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    presentation_order = db.Column(db.Integer, nullable=True, index=True)
    has_presented = db.Column(db.Boolean, default=False, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    members = db.relationship('User', back_populates='team')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'presentationOrder': self.presentation_order,
            'hasPresented': self.has_presented,
        }


class User(db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    team_id = db.Column(db.Integer, db.ForeignKey('team.id', ondelete='SET NULL'), nullable=True, index=True)
    team = db.relationship('Team', back_populates='members')

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'teamId': self.team_id,
        }


class Presentation(db.Model):
    __tablename__ = 'presentation'
    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('team.id', ondelete='CASCADE'), nullable=False, index=True)
    status = db.Column(db.String(16), default=PRESENTATION_UPCOMING, nullable=False, index=True)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    team = db.relationship('Team')

    def to_dict(self):
        return {
            'id': self.id,
            'teamId': self.team_id,
            'status': self.status,
            'startedAt': isoformat(self.started_at),
            'completedAt': isoformat(self.completed_at),
        }


class TimerState(db.Model):
    """Single shared countdown; there is exactly one row, id ``global``."""
    __tablename__ = 'timer_state'
    id = db.Column(db.String(50), primary_key=True, default=TIMER_ROW_ID)
    is_active = db.Column(db.Boolean, default=False, nullable=False)
    duration_seconds = db.Column(db.Integer, default=300, nullable=False)
    started_at = db.Column(db.DateTime, nullable=True)
    paused_at = db.Column(db.DateTime, nullable=True)
    elapsed_seconds = db.Column(db.Integer, default=0, nullable=False)
    # Plain column: presentations are wiped on queue reset, the timer row never is
    presentation_id = db.Column(db.Integer, nullable=True)

    def to_dict(self):
        return {
            'isActive': self.is_active,
            'durationSeconds': self.duration_seconds,
            'startedAt': isoformat(self.started_at),
            'pausedAt': isoformat(self.paused_at),
            'elapsedSeconds': self.elapsed_seconds,
            'currentPresentationId': self.presentation_id,
        }


class Vote(db.Model):
    __tablename__ = 'vote'
    __table_args__ = (
        # One counted ballot per voter
        db.Index(
            'uq_vote_final_per_user', 'user_id', unique=True,
            sqlite_where=db.text('is_final_vote = 1'),
            postgresql_where=db.text('is_final_vote'),
        ),
        # One draft per (voter, team)
        db.Index(
            'uq_vote_draft_per_user_team', 'user_id', 'team_id', unique=True,
            sqlite_where=db.text('is_final_vote = 0'),
            postgresql_where=db.text('NOT is_final_vote'),
        ),
    )
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    team_id = db.Column(db.Integer, db.ForeignKey('team.id', ondelete='CASCADE'), nullable=False, index=True)
    is_final_vote = db.Column(db.Boolean, default=False, nullable=False, index=True)
    public_note = db.Column(db.Text, nullable=True)
    submitted_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'teamId': self.team_id,
            'isFinalVote': self.is_final_vote,
            'publicNote': self.public_note,
            'submittedAt': isoformat(self.submitted_at),
        }


class PrivateNote(db.Model):
    __tablename__ = 'private_note'
    __table_args__ = (
        db.UniqueConstraint('user_id', 'team_id', name='uq_private_note_user_team'),
    )
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)
    team_id = db.Column(db.Integer, db.ForeignKey('team.id', ondelete='CASCADE'), nullable=False, index=True)
    note = db.Column(db.Text, default='', nullable=False)
    ranking = db.Column(db.Integer, default=0, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'teamId': self.team_id,
            'note': self.note,
            'ranking': self.ranking,
            'updatedAt': isoformat(self.updated_at),
        }
