"""Topic based publish/subscribe for real-time state changes.

Observers are callables ``observer(topic, event, payload)``. Delivery is
best effort: an observer that raises is logged and skipped, and ``publish``
never fails the operation that triggered it. Each publish works on a
snapshot of the subscriber list, and publishes on the same topic are
delivered one at a time so every observer sees them in publish order.
"""
import logging
import threading

from demoday.errors import ValidationError

logger = logging.getLogger(__name__)

TOPIC_LEADERBOARD = 'leaderboard'
TOPIC_PRESENTATION = 'presentation'
TOPIC_TIMER = 'timer'
TOPIC_VOTE = 'vote'
TOPIC_TEAM = 'team'
TOPICS = (TOPIC_LEADERBOARD, TOPIC_PRESENTATION, TOPIC_TIMER, TOPIC_VOTE, TOPIC_TEAM)

EVENT_LEADERBOARD_UPDATE = 'leaderboard:update'
EVENT_LEADERBOARD_TEAM_UPDATE = 'leaderboard:team:update'
EVENT_PRESENTATION_UPDATE = 'presentation:update'
EVENT_QUEUE_UPDATED = 'presentation:queue:updated'
EVENT_TIMER_UPDATE = 'timer:update'
EVENT_TIMER_EXPIRED = 'timer:expired'
EVENT_VOTE_SUBMITTED = 'vote:submitted'
EVENT_VOTE_COUNT = 'vote:count'
EVENT_TEAM_UPDATE = 'team:update'


def _check_topic(topic):
    if topic not in TOPICS:
        raise ValidationError(f'Unknown topic {topic!r}; expected one of {", ".join(TOPICS)}')
    return topic


class Broadcaster:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers = {topic: [] for topic in TOPICS}
        self._delivery_locks = {topic: threading.Lock() for topic in TOPICS}

    def subscribe(self, topic, observer):
        _check_topic(topic)
        with self._lock:
            if observer not in self._subscribers[topic]:
                # Copy on write so in-flight snapshots are never mutated
                self._subscribers[topic] = self._subscribers[topic] + [observer]

    def unsubscribe(self, topic, observer):
        _check_topic(topic)
        with self._lock:
            self._subscribers[topic] = [o for o in self._subscribers[topic] if o != observer]

    def subscribers(self, topic):
        _check_topic(topic)
        with self._lock:
            return tuple(self._subscribers[topic])

    def publish(self, topic, event, payload):
        """Deliver ``event`` to every current subscriber of ``topic``.

        Returns the number of observers that accepted the event.
        """
        _check_topic(topic)
        delivered = 0
        with self._delivery_locks[topic]:
            for observer in self.subscribers(topic):
                try:
                    observer(topic, event, payload)
                    delivered += 1
                except Exception:
                    logger.exception(f"[broadcast-fail] topic={topic} event={event} observer={observer!r}")
        logger.debug(f"[broadcast] topic={topic} event={event} delivered={delivered}")
        return delivered

    def clear(self):
        with self._lock:
            self._subscribers = {topic: [] for topic in TOPICS}


class SocketIOObserver:
    """Forwards every event on a topic to the Socket.IO room of the same name."""

    def __init__(self, socketio, namespace='/ws'):
        self.socketio = socketio
        self.namespace = namespace

    def __call__(self, topic, event, payload):
        self.socketio.emit(event, payload, to=topic, namespace=self.namespace)

    def __repr__(self):
        return f'SocketIOObserver(namespace={self.namespace!r})'
