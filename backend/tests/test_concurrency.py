import threading

from demoday import db
from demoday.errors import VoteRejectionKind
from demoday.models import Presentation, Team, User, Vote
from demoday.services.coordinator import get_coordinator


def _run_concurrently(app, jobs):
    """Run each callable on its own thread and app context, released together.

    Returns ``(results, errors)``; callables must return plain values since
    their session is removed when the thread finishes.
    """
    barrier = threading.Barrier(len(jobs))
    lock = threading.Lock()
    results = []
    errors = []

    def worker(job):
        with app.app_context():
            try:
                barrier.wait(10)
                value = job(get_coordinator(app))
                with lock:
                    results.append(value)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(job,)) for job in jobs]
    for t in threads:
        t.start()
    for t in threads:
        t.join(60)
    assert not any(t.is_alive() for t in threads)
    return results, errors


def _seed(app, team_names, username=None):
    with app.app_context():
        teams = [Team(name=name, has_presented=True) for name in team_names]
        db.session.add_all(teams)
        db.session.flush()
        user_id = None
        if username:
            user = User(username=username)
            db.session.add(user)
            db.session.flush()
            user_id = user.id
        db.session.commit()
        team_ids = [t.id for t in teams]
        db.session.remove()
    return team_ids, user_id


def test_one_voter_racing_ballots_keeps_one_final_and_unique_drafts(file_app):
    team_ids, voter_id = _seed(file_app, ['Aurora', 'Borealis', 'Cirrus', 'Dune'], username='judge')

    def ballot(team_id, is_final):
        def _submit(coordinator):
            outcome = coordinator.submit_vote(voter_id, team_id, is_final)
            return is_final, outcome.rejection.kind if outcome.rejection else None
        return _submit

    jobs = [ballot(team_ids[i % len(team_ids)], i % 3 == 0) for i in range(24)]
    results, errors = _run_concurrently(file_app, jobs)

    assert errors == []
    assert len(results) == 24
    accepted_finals = [r for r in results if r == (True, None)]
    assert len(accepted_finals) == 1
    for is_final, kind in results:
        if is_final and kind is not None:
            assert kind == VoteRejectionKind.ALREADY_VOTED_FINAL
        if not is_final:
            assert kind is None

    with file_app.app_context():
        votes = Vote.query.filter_by(user_id=voter_id).all()
        finals = [v for v in votes if v.is_final_vote]
        drafts = [v.team_id for v in votes if not v.is_final_vote]
        assert len(finals) == 1
        assert len(drafts) == len(set(drafts))
        assert get_coordinator(file_app).vote_count(finals[0].team_id) == 1
        db.session.remove()


def test_concurrent_advances_leave_exactly_one_current(file_app):
    _seed(file_app, [f'Team {i:02d}' for i in range(10)])
    with file_app.app_context():
        get_coordinator(file_app).initialize_queue()
        db.session.remove()

    def advance(coordinator):
        transition = coordinator.advance_to_next()
        return (
            transition.completed.id if transition.completed else None,
            transition.started.id if transition.started else None,
        )

    results, errors = _run_concurrently(file_app, [advance] * 7)

    assert errors == []
    started = [s for _, s in results]
    completed = [c for c, _ in results if c is not None]
    assert None not in started
    assert len(set(started)) == 7
    assert len(set(completed)) == 6
    assert set(completed) < set(started)

    with file_app.app_context():
        by_status = {}
        for p in Presentation.query.all():
            by_status.setdefault(p.status, []).append(p.id)
        assert len(by_status['current']) == 1
        assert len(by_status['completed']) == 6
        assert len(by_status['upcoming']) == 3
        assert set(by_status['current']) == set(started) - set(completed)
        assert Team.query.filter_by(has_presented=True).count() == 6
        db.session.remove()
