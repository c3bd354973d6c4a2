from flask import Blueprint, jsonify, request

from demoday.errors import ValidationError
from demoday.services.coordinator import get_coordinator

timer = Blueprint('timer', __name__)


def _timer_payload(coordinator, state):
    payload = state.to_dict()
    payload['remainingSeconds'] = coordinator.remaining_seconds()
    return payload


@timer.route('', methods=['GET'])
def get_timer():
    coordinator = get_coordinator()
    return jsonify(_timer_payload(coordinator, coordinator.timer_state()))


@timer.route('/remaining', methods=['GET'])
def get_remaining():
    return jsonify({'remainingSeconds': get_coordinator().remaining_seconds()})


@timer.route('/start', methods=['POST'])
def start_timer():
    data = request.get_json(silent=True) or {}
    presentation_id = data.get('presentation_id')
    if isinstance(presentation_id, bool) or not isinstance(presentation_id, int):
        raise ValidationError('presentation_id is required')
    coordinator = get_coordinator()
    state = coordinator.start_timer(presentation_id, data.get('duration_seconds'))
    return jsonify(_timer_payload(coordinator, state))


@timer.route('/pause', methods=['POST'])
def pause_timer():
    coordinator = get_coordinator()
    return jsonify(_timer_payload(coordinator, coordinator.pause_timer()))


@timer.route('/reset', methods=['POST'])
def reset_timer():
    coordinator = get_coordinator()
    return jsonify(_timer_payload(coordinator, coordinator.reset_timer()))


@timer.route('/duration', methods=['PUT'])
def set_duration():
    data = request.get_json(silent=True) or {}
    if 'duration_seconds' not in data:
        raise ValidationError('duration_seconds is required')
    coordinator = get_coordinator()
    state = coordinator.set_timer_duration(data.get('duration_seconds'))
    return jsonify(_timer_payload(coordinator, state))
