import threading
from contextlib import contextmanager
from typing import Dict, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from groupeval import db, socketio
from groupeval.models import (
    Session,
    Participant,
    GroupResult,
    SESSION_ACTIVE,
    SESSION_COMPLETED,
    digest_admin_secret,
    generate_join_code,
    utcnow,
)
from .errors import (
    ValidationError,
    NotFound,
    SessionFull,
    SessionInactive,
    AlreadySubmitted,
    NoAvailableSlot,
    InternalError,
)
from .scoring import individual_score, group_score, penalty_points, validate_ratings, validate_penalty_flags


class _SessionLock:
    __slots__ = ('lock', 'users')

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


# Entries live only while some caller holds or waits on them
_session_locks: Dict[int, _SessionLock] = {}
_registry_lock = threading.Lock()


@contextmanager
def session_lock(session_id: int):
    """Critical section for one session; other sessions are never blocked."""
    with _registry_lock:
        entry = _session_locks.get(session_id)
        if entry is None:
            entry = _session_locks[session_id] = _SessionLock()
        entry.users += 1
    try:
        with entry.lock:
            try:
                yield
            except Exception:
                # Release any row lock taken by _load_locked before the next caller enters
                db.session.rollback()
                raise
    finally:
        with _registry_lock:
            entry.users -= 1
            if entry.users == 0:
                _session_locks.pop(session_id, None)


def _load_locked(session_id: int) -> Session:
    # Everything read inside the critical section must come from the database,
    # not from instances loaded before the lock was taken.
    db.session.expire_all()
    # FOR UPDATE where the engine supports it
    session = db.session.get(Session, session_id, populate_existing=True, with_for_update=True)
    if session is None:
        raise NotFound('Session not found')
    return session


def _commit(action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise InternalError(f'Storage failure during {action}') from exc


def _room(session: Session) -> str:
    return f"session:{session.id}"


def _notify(event: str, payload: dict, room: str) -> None:
    """Best-effort push; clients reconcile through the status endpoint."""
    try:
        socketio.emit(event, payload, to=room, namespace='/ws')
    except Exception as exc:
        current_app.logger.warning(f"[notify-failed] event={event} room={room} error={exc}")


def _get_participant(participant_id) -> Participant:
    if isinstance(participant_id, bool) or not isinstance(participant_id, int):
        raise ValidationError('Participant ID must be an integer')
    participant = db.session.get(Participant, participant_id)
    if participant is None:
        raise NotFound('Participant not found')
    return participant


def _config_int(key: str, default: int) -> int:
    return int(current_app.config.get(key, default))


def create_session(name, admin_secret, participant_count=None, threshold=None) -> Session:
    name = name.strip() if isinstance(name, str) else ''
    if not name:
        raise ValidationError('Session name is required')

    min_secret = _config_int('ADMIN_SECRET_MIN_LENGTH', 6)
    if not isinstance(admin_secret, str) or len(admin_secret) < min_secret:
        raise ValidationError(f'Admin secret must be at least {min_secret} characters')

    if participant_count is None:
        participant_count = _config_int('DEFAULT_PARTICIPANT_COUNT', 10)
    min_count = _config_int('MIN_PARTICIPANTS', 2)
    max_count = _config_int('MAX_PARTICIPANTS', 10)
    if isinstance(participant_count, bool) or not isinstance(participant_count, int):
        raise ValidationError('Participant count must be an integer')
    if not min_count <= participant_count <= max_count:
        raise ValidationError(f'Participant count must be between {min_count} and {max_count}')

    if threshold is None:
        threshold = _config_int('DEFAULT_THRESHOLD', 50)
    if isinstance(threshold, bool) or not isinstance(threshold, int):
        raise ValidationError('Threshold must be an integer')
    if not 0 <= threshold <= 100:
        raise ValidationError('Threshold must be between 0 and 100')

    digest = digest_admin_secret(admin_secret)
    if Session.query.filter_by(admin_secret_digest=digest).first():
        raise ValidationError('Admin secret is already in use')

    session = Session(
        name=name,
        join_code=generate_join_code(_config_int('JOIN_CODE_LENGTH', 6)),
        admin_secret_digest=digest,
        participant_count=participant_count,
        threshold=threshold,
        status=SESSION_ACTIVE,
    )
    session.participants = [Participant() for _ in range(participant_count)]
    db.session.add(session)
    try:
        db.session.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent create using the same secret
        db.session.rollback()
        raise ValidationError('Admin secret is already in use') from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise InternalError('Storage failure during create_session') from exc
    current_app.logger.info(
        f"[create] session={session.id} code={session.join_code} capacity={participant_count} threshold={threshold}"
    )
    return session


def join_session(join_code) -> Tuple[Participant, Session]:
    """Claim the first free seat in the active session holding ``join_code``."""
    code = join_code.strip().upper() if isinstance(join_code, str) else ''
    if not code:
        raise ValidationError('Join code is required')

    candidate = Session.query.filter_by(join_code=code, status=SESSION_ACTIVE).first()
    if candidate is None:
        if Session.query.filter_by(join_code=code).first():
            raise SessionInactive('Session is not active')
        raise NotFound('Session not found')

    with session_lock(candidate.id):
        session = _load_locked(candidate.id)
        if session.status != SESSION_ACTIVE:
            raise SessionInactive('Session is not active')
        if session.joined_count >= session.participant_count:
            raise SessionFull('Session is full')
        slot = next((p for p in session.participants if not p.joined), None)
        if slot is None:
            raise NoAvailableSlot('No available slots')
        slot.joined = True
        slot.joined_at = utcnow()
        _commit('join')
        current_app.logger.info(
            f"[join] session={session.id} participant={slot.id} joined={session.joined_count}/{session.participant_count}"
        )
    return slot, session


def submit_ratings(participant_id, ratings) -> Participant:
    """Record a participant's one and only submission and finalize the session when it is the last one."""
    clean = validate_ratings(ratings)
    score = individual_score(clean)

    participant = _get_participant(participant_id)

    completed = False
    with session_lock(participant.session_id):
        session = _load_locked(participant.session_id)
        participant = db.session.get(Participant, participant.id)
        if not participant.joined:
            raise ValidationError('Participant has not joined the session')
        if participant.submitted:
            raise AlreadySubmitted('Score already submitted')
        if session.status != SESSION_ACTIVE:
            raise SessionInactive('Session is not active')

        participant.record_ratings(clean, score)
        participant.submitted = True
        participant.submitted_at = utcnow()

        submitted_count = session.submitted_count
        if submitted_count == session.participant_count and session.group_result is None:
            _finalize(session)
            completed = True
        _commit('submit')
        current_app.logger.info(
            f"[submit] session={session.id} participant={participant.id} score={score} "
            f"submitted={submitted_count}/{session.participant_count}"
        )

    room = _room(session)
    _notify('participant_submitted', {
        'session_id': session.id,
        'join_code': session.join_code,
        'submitted_count': submitted_count,
        'participant_count': session.participant_count,
    }, room)
    if completed:
        _notify('session_completed', {
            'session_id': session.id,
            'join_code': session.join_code,
            'group_result': session.group_result.to_dict(),
        }, room)
    return participant


def _finalize(session: Session) -> None:
    aggregate, passes = group_score(session.submitted_scores(), session.penalties, session.threshold)
    session.group_result = GroupResult(
        average_score=aggregate,
        passes=passes,
        penalty_points=penalty_points(session.penalties),
        submission_count=session.submitted_count,
    )
    session.status = SESSION_COMPLETED
    session.completed_at = utcnow()
    current_app.logger.info(f"[finalize] session={session.id} aggregate={aggregate} passes={passes}")


def _recompute(session: Session) -> None:
    result = session.group_result
    aggregate, passes = group_score(session.submitted_scores(), session.penalties, session.threshold)
    result.average_score = aggregate
    result.passes = passes
    result.penalty_points = penalty_points(session.penalties)
    result.updated_at = utcnow()
    current_app.logger.info(f"[recompute] session={session.id} aggregate={aggregate} passes={passes}")


def _find_by_secret(admin_secret) -> Session:
    if not isinstance(admin_secret, str) or not admin_secret:
        raise ValidationError('Admin secret is required')
    session = Session.query.filter_by(admin_secret_digest=digest_admin_secret(admin_secret)).first()
    if session is None:
        raise NotFound('Session not found')
    return session


def set_penalties(admin_secret, flags) -> Session:
    """Replace the penalty toggles; a completed session's result is recomputed in place."""
    clean = validate_penalty_flags(flags)
    found = _find_by_secret(admin_secret)

    recomputed = False
    with session_lock(found.id):
        session = _load_locked(found.id)
        session.apply_penalties(clean)
        if session.status == SESSION_COMPLETED and session.group_result is not None:
            _recompute(session)
            recomputed = True
        _commit('set_penalties')
        current_app.logger.info(f"[penalties] session={session.id} flags={clean} recomputed={recomputed}")

    if recomputed:
        _notify('result_updated', {
            'session_id': session.id,
            'join_code': session.join_code,
            'group_result': session.group_result.to_dict(),
        }, _room(session))
    return session


def admin_overview(admin_secret) -> Session:
    return _find_by_secret(admin_secret)


def session_status(participant_id) -> dict:
    participant = _get_participant(participant_id)
    session = participant.session
    completed = session.status == SESSION_COMPLETED
    return {
        'session_id': session.id,
        'session_name': session.name,
        'join_code': session.join_code,
        'status': session.status,
        'participant_count': session.participant_count,
        'joined_count': session.joined_count,
        'submitted_count': session.submitted_count,
        'threshold': session.threshold,
        'penalties': session.penalties,
        'participant': {
            'id': participant.id,
            'submitted': participant.submitted,
            'score': participant.score,
        },
        'group_result': session.group_result.to_dict() if completed and session.group_result else None,
    }
