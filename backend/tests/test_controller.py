import threading

import pytest

from groupeval import db
from groupeval.models import GroupResult, Session, SESSION_COMPLETED
from groupeval.services.sessions import controller
from groupeval.services.sessions.errors import SessionError, SessionFull
from groupeval.services.sessions.scoring import group_score, individual_score


def _run_concurrently(app, target, args_list):
    """Start one thread per args tuple, release them together, collect outcomes."""
    barrier = threading.Barrier(len(args_list))
    results, errors = [], []

    def worker(*args):
        with app.app_context():
            barrier.wait()
            try:
                results.append(target(*args))
            except SessionError as exc:
                errors.append(exc)

    threads = [threading.Thread(target=worker, args=args) for args in args_list]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results, errors


def test_concurrent_joins_get_distinct_slots(threaded_app):
    session = controller.create_session('Crowd', 'crowd-secret', participant_count=5, threshold=50)
    code, session_id = session.join_code, session.id

    def join(join_code):
        participant, _ = controller.join_session(join_code)
        return participant.id

    results, errors = _run_concurrently(threaded_app, join, [(code,)] * 5)
    assert errors == []
    assert len(results) == 5
    assert len(set(results)) == 5

    with pytest.raises(SessionFull):
        controller.join_session(code)

    db.session.expire_all()
    assert db.session.get(Session, session_id).joined_count == 5


def test_concurrent_last_submissions_create_one_result(threaded_app):
    capacity = 4
    session = controller.create_session('Race', 'race-secret', participant_count=capacity, threshold=40)
    session_id, code = session.id, session.join_code
    participant_ids = [controller.join_session(code)[0].id for _ in range(capacity)]

    submissions = [
        {'rarity': 10, 'social': 9, 'distance': 8, 'context': 7},
        {'rarity': 1, 'social': 2, 'distance': 3, 'context': 4},
        {'rarity': 6, 'social': 6, 'distance': 6, 'context': 6},
        {'rarity': 3, 'social': 10, 'distance': 1, 'context': 5},
    ]

    def submit(pid, ratings):
        return controller.submit_ratings(pid, ratings).id

    results, errors = _run_concurrently(threaded_app, submit, list(zip(participant_ids, submissions)))
    assert errors == []
    assert sorted(results) == sorted(participant_ids)

    db.session.expire_all()
    assert GroupResult.query.filter_by(session_id=session_id).count() == 1
    session = db.session.get(Session, session_id)
    assert session.status == SESSION_COMPLETED

    expected, passes = group_score([individual_score(r) for r in submissions], {}, 40)
    assert session.group_result.average_score == expected
    assert session.group_result.passes is passes
    assert session.group_result.submission_count == capacity


def test_concurrent_penalty_edits_leave_consistent_result(threaded_app):
    session = controller.create_session('Edits', 'edits-secret', participant_count=2, threshold=50)
    session_id, code = session.id, session.join_code
    for ratings in ({'rarity': 10, 'social': 10, 'distance': 10, 'context': 10},
                    {'rarity': 1, 'social': 1, 'distance': 1, 'context': 1}):
        participant, _ = controller.join_session(code)
        controller.submit_ratings(participant.id, ratings)

    flags = [({'recent': True},), ({'recent': True},), ({'recent': True},)]

    def apply(penalties):
        return controller.set_penalties('edits-secret', penalties).id

    results, errors = _run_concurrently(threaded_app, apply, flags)
    assert errors == []
    assert results == [session_id] * 3

    db.session.expire_all()
    result = db.session.get(Session, session_id).group_result
    assert result.average_score == 35
    assert result.penalty_points == 15
    assert GroupResult.query.filter_by(session_id=session_id).count() == 1


def test_never_completes_without_all_seats(flask_app):
    session = controller.create_session('Partial', 'partial-secret', participant_count=3, threshold=10)
    participant, _ = controller.join_session(session.join_code)
    controller.submit_ratings(participant.id, {'rarity': 10, 'social': 10, 'distance': 10, 'context': 10})

    status = controller.session_status(participant.id)
    assert status['status'] == 'ACTIVE'
    assert status['joined_count'] == 1
    assert status['submitted_count'] == 1
    assert status['group_result'] is None


def test_status_is_read_only(flask_app):
    session = controller.create_session('Reads', 'reads-secret', participant_count=1, threshold=10)
    participant, _ = controller.join_session(session.join_code)
    first = controller.session_status(participant.id)
    second = controller.session_status(participant.id)
    assert first == second
    assert not db.session.dirty


def test_session_locks_released_after_use(flask_app):
    for n in range(3):
        session = controller.create_session(f'Round {n}', f'round-secret-{n}', participant_count=1, threshold=10)
        participant, _ = controller.join_session(session.join_code)
        controller.submit_ratings(participant.id, {'rarity': 5, 'social': 5, 'distance': 5, 'context': 5})
        controller.set_penalties(f'round-secret-{n}', {'recent': True})

    with pytest.raises(SessionError):
        controller.join_session(session.join_code)

    assert controller._session_locks == {}
