from flask import Blueprint, jsonify, request

from demoday.errors import ValidationError
from demoday.services.coordinator import get_coordinator

voting = Blueprint('voting', __name__)


@voting.route('', methods=['POST'])
def submit_vote():
    """
    Casts or updates a ballot. Rule violations come back with a stable code.
    """
    data = request.get_json(silent=True) or {}
    outcome = get_coordinator().submit_vote(
        data.get('voter_id'),
        data.get('team_id'),
        data.get('is_final_vote', False),
        public_note=data.get('public_note'),
        team_hint=data.get('voter_team_id'),
    )
    if not outcome.ok:
        return jsonify(outcome.to_dict()), outcome.rejection.status_code
    return jsonify(outcome.to_dict()), 201 if outcome.is_new else 200


@voting.route('/user/<int:voter_id>', methods=['GET'])
def get_user_votes(voter_id):
    return jsonify([v.to_dict() for v in get_coordinator().get_user_votes(voter_id)])


@voting.route('/rankings/<int:voter_id>', methods=['GET'])
def get_user_rankings(voter_id):
    return jsonify(get_coordinator().get_user_rankings(voter_id))


@voting.route('/notes', methods=['PUT'])
def update_private_note():
    data = request.get_json(silent=True) or {}
    note = get_coordinator().update_private_note(
        data.get('voter_id'),
        data.get('team_id'),
        data.get('note'),
        data.get('ranking'),
    )
    return jsonify(note.to_dict())


@voting.route('/count/<int:team_id>', methods=['GET'])
def get_vote_count(team_id):
    return jsonify({'teamId': team_id, 'count': get_coordinator().vote_count(team_id)})


@voting.route('/status', methods=['GET'])
def get_voting_status():
    return jsonify({'isOpen': get_coordinator().is_voting_open()})


@voting.route('/status', methods=['PUT'])
def set_voting_status():
    data = request.get_json(silent=True) or {}
    is_open = data.get('is_open')
    if not isinstance(is_open, bool):
        raise ValidationError('is_open must be a boolean')
    return jsonify({'isOpen': get_coordinator().set_voting_open(is_open)})
