from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from demoday import socketio
from demoday.broadcaster import (
    EVENT_LEADERBOARD_UPDATE,
    EVENT_QUEUE_UPDATED,
    EVENT_TIMER_UPDATE,
    TOPIC_LEADERBOARD,
    TOPIC_PRESENTATION,
    TOPIC_TIMER,
    TOPICS,
)
from demoday.errors import CoordinationError
from demoday.services.coordinator import get_coordinator


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _snapshot(topic):
    """Current state for a topic as ``(event, payload)``, or ``None``."""
    coordinator = get_coordinator()
    if topic == TOPIC_LEADERBOARD:
        return EVENT_LEADERBOARD_UPDATE, [e.to_dict() for e in coordinator.get_leaderboard()]
    if topic == TOPIC_PRESENTATION:
        return EVENT_QUEUE_UPDATED, coordinator.queue_status().to_dict()
    if topic == TOPIC_TIMER:
        return EVENT_TIMER_UPDATE, coordinator.timer_state().to_dict()
    return None


def _send_snapshot(topic):
    try:
        snapshot = _snapshot(topic)
    except CoordinationError as exc:
        emit(f'{topic}:error', exc.to_dict())
        return
    if snapshot is not None:
        emit(*snapshot)


def handle_connect():
    emit('connected', {'message': 'Connected to /ws', 'topics': list(TOPICS)})


def handle_disconnect(*_args):
    # Socket.IO drops the sid from its rooms; nothing else is tracked per socket
    current_app.logger.debug(f"[ws-disconnect] sid={_get_sid()}")


def handle_subscribe(data):
    topic = (data or {}).get('topic')
    if topic not in TOPICS:
        emit('error', {'message': f'topic must be one of {", ".join(TOPICS)}'})
        return
    join_room(topic)
    current_app.logger.info(f"[ws-subscribe] sid={_get_sid()} topic={topic}")
    emit('subscribed', {'topic': topic})
    _send_snapshot(topic)


def handle_unsubscribe(data):
    topic = (data or {}).get('topic')
    if topic not in TOPICS:
        emit('error', {'message': f'topic must be one of {", ".join(TOPICS)}'})
        return
    leave_room(topic)
    emit('unsubscribed', {'topic': topic})


def handle_ping(data):
    emit('pong', data or {})


def _topic_handlers(topic):
    def on_subscribe(data=None):
        handle_subscribe({'topic': topic})

    def on_unsubscribe(data=None):
        handle_unsubscribe({'topic': topic})

    def on_request(data=None):
        _send_snapshot(topic)

    return on_subscribe, on_unsubscribe, on_request


def _register(namespace):
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('subscribe', handle_subscribe, namespace=namespace)
    socketio.on_event('unsubscribe', handle_unsubscribe, namespace=namespace)
    socketio.on_event('ping', handle_ping, namespace=namespace)
    for topic in TOPICS:
        on_subscribe, on_unsubscribe, on_request = _topic_handlers(topic)
        socketio.on_event(f'{topic}:subscribe', on_subscribe, namespace=namespace)
        socketio.on_event(f'{topic}:unsubscribe', on_unsubscribe, namespace=namespace)
        if topic in (TOPIC_LEADERBOARD, TOPIC_PRESENTATION, TOPIC_TIMER):
            socketio.on_event(f'{topic}:request', on_request, namespace=namespace)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    _register('/ws')
    if testing:
        _register('/')
