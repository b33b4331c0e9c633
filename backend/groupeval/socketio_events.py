from flask_socketio import join_room, leave_room, emit
from groupeval import socketio


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def _session_room(data):
    # Join codes can be reused once a session completes; ids never are
    session_id = (data or {}).get('session_id')
    if isinstance(session_id, bool) or not isinstance(session_id, int):
        return None
    return f"session:{session_id}"


def handle_join_session(data):
    room = _session_room(data)
    if room is None:
        emit('error', {'message': 'session_id is required'})
        return
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_session(data):
    room = _session_room(data)
    if room is None:
        emit('error', {'message': 'session_id is required'})
        return
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Rooms are hints only: clients that miss an event recover through the
    participant status endpoint. Always register on namespace '/ws'. When
    testing is True, also mirror handlers on the default namespace '/'.
    """
    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('join_session', handle_join_session, namespace='/ws')
    socketio.on_event('leave_session', handle_leave_session, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')

    if testing:
        # Test-only mirror on default namespace
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('join_session', handle_join_session, namespace='/')
        socketio.on_event('leave_session', handle_leave_session, namespace='/')
        socketio.on_event('ping', handle_ping, namespace='/')
