from flask import Blueprint, jsonify

from demoday.services.coordinator import get_coordinator

presentations = Blueprint('presentations', __name__)


@presentations.route('', methods=['GET'])
def list_presentations():
    items = get_coordinator().list_presentations()
    return jsonify([p.to_dict() for p in items])


@presentations.route('/queue', methods=['GET'])
def queue_status():
    return jsonify(get_coordinator().queue_status().to_dict())


@presentations.route('/<int:presentation_id>', methods=['GET'])
def get_presentation(presentation_id):
    return jsonify(get_coordinator().get_presentation(presentation_id).to_dict())


@presentations.route('/initialize', methods=['POST'])
def initialize_queue():
    """
    Shuffles every team into a fresh queue of upcoming presentations.
    """
    created = get_coordinator().initialize_queue()
    return jsonify([p.to_dict() for p in created]), 201


@presentations.route('/<int:presentation_id>/start', methods=['POST'])
def start_presentation(presentation_id):
    started = get_coordinator().start_presentation(presentation_id)
    return jsonify(started.to_dict())


@presentations.route('/advance', methods=['POST'])
def advance_to_next():
    """
    Completes the current presentation and starts the next one in order.
    """
    transition = get_coordinator().advance_to_next()
    return jsonify(transition.to_dict())


@presentations.route('/reset', methods=['POST'])
def reset_queue():
    deleted = get_coordinator().reset_queue()
    return jsonify({'message': 'Presentation queue reset', 'deleted': deleted})
