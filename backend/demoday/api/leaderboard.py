from flask import Blueprint, jsonify

from demoday.services.coordinator import get_coordinator

leaderboard = Blueprint('leaderboard', __name__)


@leaderboard.route('', methods=['GET'])
def get_leaderboard():
    return jsonify([e.to_dict() for e in get_coordinator().get_leaderboard()])


@leaderboard.route('/stats', methods=['GET'])
def get_stats():
    return jsonify(get_coordinator().get_leaderboard_stats())


@leaderboard.route('/teams/<int:team_id>', methods=['GET'])
def get_team_entry(team_id):
    entry = get_coordinator().get_team_entry(team_id)
    if entry is None:
        return jsonify({'error': 'Team not found or has not presented', 'code': 'NOT_FOUND'}), 404
    return jsonify(entry.to_dict())


@leaderboard.route('/teams/<int:team_id>/presented', methods=['POST'])
def mark_presented(team_id):
    """
    Marks a team as presented without running it through the queue.
    """
    coordinator = get_coordinator()
    coordinator.mark_presented(team_id)
    return jsonify([e.to_dict() for e in coordinator.get_leaderboard()])
