from flask_socketio import join_room, leave_room, emit
from playhall import socketio
from flask import current_app, request
from playhall.services.games.letter_catch import GameRuleError, SCENE_GAME
from playhall.services.games.sessions import (
    apply,
    end_session,
    get_session,
    room_for,
    SessionNotFoundError,
)
from typing import Dict, Any
import time


_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_owner_count: Dict[str, int] = {}
_pause_deadline: Dict[str, float] = {}


def _get_sid() -> str:
    return request.sid  # type: ignore


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # When the last owner of a session drops, pause the game so letters stop
    # falling while nobody is watching
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    code = ctx.get('session_code')
    if ctx.get('is_session_owner') and code:
        _owner_count[code] = max(0, _owner_count.get(code, 0) - 1)
        if current_app.config.get('TESTING'):
            if _owner_count.get(code, 0) == 0:
                _auto_pause(code)
            return
        _schedule_pause_if_no_owner(code)


def handle_join_session(data):
    code = (data or {}).get('session_code')
    is_session_owner = bool((data or {}).get('is_session_owner'))
    if not code:
        emit('error', {'message': 'session_code is required'})
        return
    if not isinstance(code, str):
        emit('error', {'message': 'session_code must be a string'})
        return
    code = code.upper()
    session = get_session(code)
    if not session:
        emit('error', {'message': f'Session {code} not found'})
        return
    room = room_for(code)
    join_room(room)
    _sid_to_ctx[_get_sid()] = {'session_code': code, 'is_session_owner': is_session_owner}
    if is_session_owner:
        _owner_count[code] = _owner_count.get(code, 0) + 1
        _pause_deadline.pop(code, None)
    emit('joined', {'room': room})
    emit('state_update', session.to_dict())


def handle_leave_session(data):
    code = (data or {}).get('session_code')
    if not code:
        emit('error', {'message': 'session_code is required'})
        return
    if not isinstance(code, str):
        emit('error', {'message': 'session_code must be a string'})
        return
    code = code.upper()
    room = room_for(code)
    leave_room(room)
    emit('left', {'room': room})
    ctx = _sid_to_ctx.get(_get_sid())
    if ctx and ctx.get('is_session_owner') and ctx.get('session_code') == code:
        # Explicit quit by the player: end immediately
        _sid_to_ctx.pop(_get_sid(), None)
        _owner_count.pop(code, None)
        end_session(code)


def handle_click_letter(data):
    data = data or {}
    code = data.get('session_code')
    letter_id = data.get('letter_id')
    if not code or letter_id is None:
        emit('error', {'message': 'session_code and letter_id are required'})
        return
    if not isinstance(code, str):
        emit('error', {'message': 'session_code must be a string'})
        return
    try:
        _, result = apply(code, lambda game: game.click(int(letter_id)))
    except SessionNotFoundError as exc:
        emit('error', {'message': str(exc)})
        return
    except (GameRuleError, ValueError, TypeError) as exc:
        emit('error', {'message': str(exc)})
        return
    emit('click_result', result)


def handle_ping(data):
    emit('pong', data or {})


def _auto_pause(code: str) -> None:
    _pause_deadline.pop(code, None)
    session = get_session(code)
    if not session or session.scene != SCENE_GAME:
        return
    try:
        apply(code, lambda game: game.pause())
        current_app.logger.info(f"[auto-pause] session={code} owner disconnected")
    except (SessionNotFoundError, GameRuleError) as exc:
        current_app.logger.info(f"[auto-pause-skip] session={code} {exc}")


def _schedule_pause_if_no_owner(code: str) -> None:
    if _owner_count.get(code, 0) > 0:
        return
    delay = float(current_app.config.get('OWNER_GRACE_SEC', 2.0))
    deadline = time.time() + delay
    _pause_deadline[code] = deadline
    app = current_app._get_current_object()

    def _runner(session_code: str, expected_deadline: float):
        sleep_for = max(0.0, expected_deadline - time.time())
        if sleep_for:
            time.sleep(sleep_for)
        if _owner_count.get(session_code, 0) == 0 and _pause_deadline.get(session_code) == expected_deadline:
            with app.app_context():
                _auto_pause(session_code)

    socketio.start_background_task(_runner, code, deadline)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
        socketio.on_event('join_session', handle_join_session, namespace=namespace)
        socketio.on_event('leave_session', handle_leave_session, namespace=namespace)
        socketio.on_event('click_letter', handle_click_letter, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
