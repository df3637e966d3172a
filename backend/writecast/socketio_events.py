from flask_socketio import join_room, leave_room, emit
from writecast import socketio

NAMESPACE = '/ws'


def _room(code: str) -> str:
    return f"puzzle:{code.strip().upper()}"


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_puzzle(data):
    code = (data or {}).get('code')
    if not code:
        emit('error', {'message': 'code is required'})
        return
    room = _room(code)
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_puzzle(data):
    code = (data or {}).get('code')
    if not code:
        emit('error', {'message': 'code is required'})
        return
    room = _room(code)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def broadcast_stats(puzzle) -> None:
    """Push the puzzle's aggregate counters to everyone watching its code."""
    payload = {'code': puzzle.code}
    payload.update(puzzle.stats())
    socketio.emit('stats_update', payload, to=_room(puzzle.code), namespace=NAMESPACE)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('join_puzzle', handle_join_puzzle, namespace=namespace)
        socketio.on_event('leave_puzzle', handle_leave_puzzle, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
