"""Presentation queue: upcoming -> current -> completed.

Every transition holds ``EventState.queue_lock`` and runs as one
transaction, so at most one presentation is ever ``current`` and a caller
never sees a completion without the matching start (or the reverse).
"""
import random
from dataclasses import dataclass, field
from typing import List, Optional

from flask import current_app

from demoday import db
from demoday.errors import ConflictError, InternalError, NotFoundError
from demoday.models import (
    PRESENTATION_COMPLETED,
    PRESENTATION_CURRENT,
    PRESENTATION_UPCOMING,
    Presentation,
    Team,
)
from .transaction import atomic, read_snapshot


@dataclass
class QueueTransition:
    completed: Optional[Presentation] = None
    started: Optional[Presentation] = None

    def to_dict(self):
        return {
            'completed': self.completed.to_dict() if self.completed else None,
            'started': self.started.to_dict() if self.started else None,
        }


@dataclass
class QueueStatus:
    current: Optional[Presentation] = None
    upcoming: List[Presentation] = field(default_factory=list)
    completed: List[Presentation] = field(default_factory=list)

    def to_dict(self):
        return {
            'current': self.current.to_dict() if self.current else None,
            'upcoming': [p.to_dict() for p in self.upcoming],
            'completed': [p.to_dict() for p in self.completed],
        }


class QueueManager:
    def __init__(self, state, registry, rng=None):
        self.state = state
        self.registry = registry
        self.rng = rng or random.Random()

    # ---- transitions ----

    def initialize(self):
        """Shuffle every team into a fresh queue of upcoming presentations."""
        with self.state.queue_lock:
            with atomic() as session:
                active = Presentation.query.filter_by(status=PRESENTATION_CURRENT).count()
                if active:
                    raise ConflictError('A presentation is in progress; reset or finish the queue first')
                Presentation.query.delete(synchronize_session=False)
                order = [t.id for t in self.registry.all_teams()]
                # random.shuffle is a Fisher-Yates shuffle
                self.rng.shuffle(order)
                self.registry.assign_presentation_order(order)
                created = [Presentation(team_id=team_id, status=PRESENTATION_UPCOMING) for team_id in order]
                session.add_all(created)
                session.flush()
            current_app.logger.info(f"[queue-init] presentations={len(created)} order={order}")
            return created

    def start(self, presentation_id):
        """Make ``presentation_id`` current, completing whichever one was."""
        with self.state.queue_lock:
            with atomic() as session:
                target = session.get(Presentation, presentation_id)
                if target is None:
                    raise NotFoundError(f'Presentation {presentation_id} not found')
                if target.status == PRESENTATION_CURRENT:
                    return QueueTransition(started=target)
                if target.status == PRESENTATION_COMPLETED:
                    raise ConflictError(f'Presentation {presentation_id} has already been completed')
                now = self.state.now()
                completed = self._complete_current(now)
                target.status = PRESENTATION_CURRENT
                target.started_at = now
                session.add(target)
            current_app.logger.info(
                f"[queue-start] started={target.id} team={target.team_id} completed={completed.id if completed else None}"
            )
            return QueueTransition(completed=completed, started=target)

    def advance_to_next(self):
        """Complete the current presentation and start the next upcoming one.

        ``started`` is ``None`` once the queue is exhausted.
        """
        with self.state.queue_lock:
            with atomic() as session:
                now = self.state.now()
                completed = self._complete_current(now)
                nxt = (
                    Presentation.query
                    .join(Team, Team.id == Presentation.team_id)
                    .filter(Presentation.status == PRESENTATION_UPCOMING)
                    .order_by(Team.presentation_order.asc(), Presentation.id.asc())
                    .first()
                )
                if nxt is not None:
                    nxt.status = PRESENTATION_CURRENT
                    nxt.started_at = now
                    session.add(nxt)
            current_app.logger.info(
                f"[queue-advance] completed={completed.id if completed else None} started={nxt.id if nxt else None}"
            )
            return QueueTransition(completed=completed, started=nxt)

    def reset(self):
        with self.state.queue_lock:
            with atomic():
                deleted = Presentation.query.delete(synchronize_session=False)
                self.registry.clear_presentation_state()
            current_app.logger.info(f"[queue-reset] deleted={deleted}")
            return deleted

    def _complete_current(self, now):
        currents = Presentation.query.filter_by(status=PRESENTATION_CURRENT).all()
        if len(currents) > 1:
            raise InternalError(f'{len(currents)} presentations are current')
        if not currents:
            return None
        current = currents[0]
        current.status = PRESENTATION_COMPLETED
        current.completed_at = now
        db.session.add(current)
        try:
            self.registry.mark_presented(current.team_id)
        except NotFoundError as exc:
            raise InternalError(f'Presentation {current.id} references a missing team') from exc
        return current

    # ---- reads ----

    def status(self):
        rows = read_snapshot(
            lambda: db.session.query(Presentation, Team)
            .outerjoin(Team, Team.id == Presentation.team_id)
            .all()
        )
        current = []
        upcoming = []
        completed = []
        for presentation, team in rows:
            if team is None:
                raise InternalError(f'Presentation {presentation.id} references a missing team')
            if presentation.status == PRESENTATION_CURRENT:
                current.append(presentation)
            elif presentation.status == PRESENTATION_UPCOMING:
                upcoming.append((team.presentation_order or 0, presentation.id, presentation))
            else:
                completed.append(presentation)
        if len(current) > 1:
            raise InternalError(f'{len(current)} presentations are current')
        upcoming.sort(key=lambda item: (item[0], item[1]))
        completed.sort(key=lambda p: (p.completed_at is not None, p.completed_at, p.id), reverse=True)
        return QueueStatus(
            current=current[0] if current else None,
            upcoming=[item[2] for item in upcoming],
            completed=completed,
        )

    def all(self):
        snapshot = self.status()
        return ([snapshot.current] if snapshot.current else []) + snapshot.upcoming + snapshot.completed

    def get(self, presentation_id):
        presentation = read_snapshot(db.session.get, Presentation, presentation_id)
        if presentation is None:
            raise NotFoundError(f'Presentation {presentation_id} not found')
        return presentation
