import pytest

from demoday import db
from demoday.errors import NotFoundError
from demoday.models import Presentation, Team, User
from demoday.services.state import EventState


def test_reset_returns_owned_state_to_baseline(coordinator, clock, recorder, make_team):
    team = make_team('Aurora')
    p = Presentation(team_id=team.id)
    db.session.add(p)
    db.session.commit()

    coordinator.set_voting_open(False)
    held = coordinator.state.voter_locks.get(42)
    coordinator.start_timer(p.id, 5)
    clock.advance(5)
    assert coordinator.check_timer_expiry() is True
    assert coordinator.check_timer_expiry() is False

    coordinator.reset()

    assert coordinator.is_voting_open() is True
    assert len(coordinator.state.voter_locks) == 0
    assert coordinator.state.voter_locks.get(42) is not held
    # The same run may be announced again after a reset
    assert coordinator.check_timer_expiry() is True
    assert len(recorder.payloads('timer:expired')) == 2


def test_state_reset_restores_configured_default():
    state = EventState(voting_open=False)
    state.set_voting_open(True)
    state.reset()
    assert state.voting_open is False


def test_db_reset_command_seeds_and_resets(flask_app, coordinator):
    coordinator.set_voting_open(False)
    result = flask_app.test_cli_runner().invoke(args=['db-reset'])
    assert result.exit_code == 0, result.output
    assert 'reset and seeded' in result.output

    assert coordinator.is_voting_open() is True
    assert Team.query.count() == 4
    assert User.query.filter_by(username='judge').one().team_id is None
    assert User.query.filter(User.team_id.isnot(None)).count() == 8
    assert coordinator.timer_state().duration_seconds == 300


def test_mark_presented_opens_voting_and_publishes(coordinator, recorder, make_team, make_user):
    team = make_team('Aurora')
    voter = make_user('judge')

    rejected = coordinator.submit_vote(voter.id, team.id, True)
    assert rejected.rejection.kind.value == 'TEAM_NOT_PRESENTED'

    marked = coordinator.mark_presented(team.id)
    assert marked.has_presented is True
    assert recorder.payloads('team:update') == [{'action': 'updated', 'team': marked.to_dict()}]
    assert recorder.payloads('leaderboard:update')[-1][0]['teamId'] == team.id
    assert recorder.payloads('leaderboard:team:update')[-1]['entry']['rank'] == 1

    assert coordinator.submit_vote(voter.id, team.id, True).ok
    # Idempotent
    assert coordinator.mark_presented(team.id).has_presented is True


def test_mark_presented_unknown_team(coordinator, recorder):
    with pytest.raises(NotFoundError):
        coordinator.mark_presented(9999)
    assert recorder.events == []


def test_mark_presented_over_http(client, make_team):
    team = make_team('Aurora')
    make_team('Borealis')
    res = client.post(f'/api/leaderboard/teams/{team.id}/presented')
    assert res.status_code == 200
    assert [e['teamId'] for e in res.get_json()] == [team.id]

    res = client.post('/api/leaderboard/teams/9999/presented')
    assert res.status_code == 404
    assert res.get_json()['code'] == 'NOT_FOUND'
