import threading

from flask import current_app

from demoday import db
from demoday.broadcaster import EVENT_TIMER_EXPIRED, TOPIC_TIMER
from demoday.models import isoformat


class TimerExpiryWatcher:
    """Publishes ``timer:expired`` once per timer run when it hits zero.

    A run is identified by its ``(presentation_id, started_at)`` pair, so a
    restarted timer can expire again while repeated polls of a finished one
    stay quiet.
    """

    def __init__(self, timer, broadcaster):
        self.timer = timer
        self.broadcaster = broadcaster
        self._lock = threading.Lock()
        self._expired_run = None

    def reset(self):
        with self._lock:
            self._expired_run = None

    def check(self):
        state = self.timer.state_row()
        if not state.is_active or state.started_at is None:
            return False
        now = self.timer.state.now()
        if self.timer.remaining(now) > 0:
            return False
        run = (state.presentation_id, state.started_at)
        with self._lock:
            if self._expired_run == run:
                return False
            self._expired_run = run
        current_app.logger.info(f"[timer-expired] presentation={state.presentation_id}")
        self.broadcaster.publish(TOPIC_TIMER, EVENT_TIMER_EXPIRED, {'timestamp': isoformat(now)})
        return True


def start_timer_watcher(app, socketio):
    """Poll the shared timer in a background task and announce expiry.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Polls every TIMER_POLL_SEC seconds for the lifetime of the process
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return None

    from .coordinator import get_coordinator

    interval = max(0.1, float(app.config.get('TIMER_POLL_SEC', 1)))

    def _worker():
        app.logger.info(f"[timer-watch] polling every {interval}s")
        while True:
            socketio.sleep(interval)
            with app.app_context():
                try:
                    get_coordinator(app).check_timer_expiry()
                except Exception:
                    app.logger.exception("[timer-watch] expiry check failed")
                finally:
                    db.session.remove()

    return socketio.start_background_task(_worker)

