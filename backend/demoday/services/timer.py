"""Shared presentation countdown.

State lives in the single ``timer_state`` row. Elapsed time is tracked in
whole seconds: ``elapsed_seconds`` holds time banked by earlier pauses and a
running timer adds ``now - started_at`` on top.
"""
from flask import current_app

from demoday import db
from demoday.errors import ValidationError
from demoday.models import TIMER_ROW_ID, TimerState
from .transaction import atomic, read_snapshot

MIN_DURATION_SEC = 1
MAX_DURATION_SEC = 3600


def validate_duration(seconds):
    if isinstance(seconds, bool) or not isinstance(seconds, int):
        raise ValidationError('Duration must be a whole number of seconds')
    if seconds < MIN_DURATION_SEC or seconds > MAX_DURATION_SEC:
        raise ValidationError(f'Duration must be between {MIN_DURATION_SEC} and {MAX_DURATION_SEC} seconds')
    return seconds


def _whole_seconds(start, end):
    return max(0, int((end - start).total_seconds()))


def remaining_for(timer, now):
    """Seconds left on ``timer`` at ``now``; never negative."""
    elapsed = timer.elapsed_seconds or 0
    if timer.is_active and timer.started_at is not None:
        elapsed += _whole_seconds(timer.started_at, now)
    return max(0, timer.duration_seconds - elapsed)


class TimerController:
    def __init__(self, state, default_duration=300):
        self.state = state
        self.default_duration = validate_duration(default_duration)

    def init(self):
        with self.state.timer_lock:
            with atomic():
                timer = self._row()
            return timer

    def _row(self):
        timer = db.session.get(TimerState, TIMER_ROW_ID)
        if timer is None:
            timer = TimerState(
                id=TIMER_ROW_ID,
                is_active=False,
                duration_seconds=self.default_duration,
                elapsed_seconds=0,
            )
            db.session.add(timer)
            db.session.flush()
        return timer

    def state_row(self):
        timer = read_snapshot(db.session.get, TimerState, TIMER_ROW_ID)
        if timer is None:
            return self.init()
        return timer

    def start(self, presentation_id, duration_seconds=None):
        if duration_seconds is not None:
            validate_duration(duration_seconds)
        with self.state.timer_lock:
            with atomic():
                timer = self._row()
                if duration_seconds is not None:
                    timer.duration_seconds = duration_seconds
                timer.is_active = True
                timer.started_at = self.state.now()
                timer.paused_at = None
                timer.elapsed_seconds = 0
                timer.presentation_id = presentation_id
            current_app.logger.info(
                f"[timer-start] presentation={presentation_id} duration={timer.duration_seconds}s"
            )
            return timer

    def pause(self):
        with self.state.timer_lock:
            with atomic():
                timer = self._row()
                if not timer.is_active:
                    return timer
                now = self.state.now()
                if timer.started_at is not None:
                    timer.elapsed_seconds = (timer.elapsed_seconds or 0) + _whole_seconds(timer.started_at, now)
                timer.is_active = False
                timer.paused_at = now
            current_app.logger.info(f"[timer-pause] elapsed={timer.elapsed_seconds}s")
            return timer

    def reset(self):
        with self.state.timer_lock:
            with atomic():
                timer = self._row()
                timer.is_active = False
                timer.started_at = None
                timer.paused_at = None
                timer.elapsed_seconds = 0
                timer.presentation_id = None
            current_app.logger.info("[timer-reset]")
            return timer

    def set_duration(self, seconds):
        validate_duration(seconds)
        with self.state.timer_lock:
            with atomic():
                timer = self._row()
                timer.duration_seconds = seconds
            current_app.logger.info(f"[timer-duration] duration={seconds}s")
            return timer

    def remaining(self, now=None):
        return remaining_for(self.state_row(), now or self.state.now())
