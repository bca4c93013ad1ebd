import random
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple
import time

from flask import current_app

from playhall import db, socketio
from playhall.models import GameSession
from .letter_catch import LetterCatchGame, GameRules, GameRuleError, SCENE_GAME


rng_factory: Callable[[], random.Random] = random.Random

_session_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


class SessionNotFoundError(LookupError):
    def __init__(self, code: str):
        self.code = code
        super().__init__(f'Session {code} not found')


def room_for(code: str) -> str:
    return f"session:{code.upper()}"


def lock_for(code: str) -> threading.Lock:
    with _locks_guard:
        lock = _session_locks.get(code)
        if lock is None:
            lock = _session_locks[code] = threading.Lock()
        return lock


def get_session(code: Optional[str]) -> Optional[GameSession]:
    if not code:
        return None
    return GameSession.query.filter_by(session_code=code.upper()).first()


def require_session(code: Optional[str]) -> GameSession:
    session = get_session(code)
    if not session:
        raise SessionNotFoundError((code or '').upper())
    return session


def load_engine(session: GameSession) -> LetterCatchGame:
    rules = GameRules.from_config(current_app.config)
    return LetterCatchGame.from_dict(session.snapshot, rules=rules, rng=rng_factory())


def create_session(game_id: str = 'abc-learning', player_name: Optional[str] = None) -> GameSession:
    engine = LetterCatchGame(rules=GameRules.from_config(current_app.config), rng=rng_factory())
    session = GameSession(game_id=game_id, player_name=player_name)
    session.store_snapshot(engine.to_dict())
    db.session.add(session)
    db.session.commit()
    current_app.logger.info(f"[session-create] session={session.session_code} game={game_id}")
    return session


def broadcast_state(session: GameSession) -> None:
    socketio.emit('state_update', session.to_dict(), to=room_for(session.session_code), namespace='/ws')


def broadcast_effects(code: str, effects: List[Dict[str, Any]]) -> None:
    for effect in effects:
        socketio.emit('effect', dict(effect, session_code=code), to=room_for(code), namespace='/ws')


def apply(code: str, action: Callable[[LetterCatchGame], Any], schedule: bool = True) -> Tuple[GameSession, Any]:
    """Run ``action`` against the session's engine and persist the result.

    The engine is loaded from the stored snapshot, mutated, saved and the new
    state is pushed to the session room together with any effects the action
    produced. A ``GameRuleError`` leaves the stored state untouched but its
    effects (e.g. the shake on an empty selection) are still pushed.
    """
    code = (code or '').upper()
    with lock_for(code):
        # Reload the row; attributes cached by this db session may predate another writer
        db.session.expire_all()
        session = require_session(code)
        engine = load_engine(session)
        try:
            result = action(engine)
        except GameRuleError:
            broadcast_effects(code, engine.drain_effects())
            raise
        effects = engine.drain_effects()
        session.store_snapshot(engine.to_dict())
        db.session.add(session)
        db.session.commit()
        broadcast_state(session)
        broadcast_effects(code, effects)
        in_game = engine.scene == SCENE_GAME

    if schedule and in_game:
        from .scheduler import ensure_session_loop
        ensure_session_loop(current_app._get_current_object(), code)
    return session, result


def end_session(code: str) -> bool:
    """Delete the session row, then tell the room it has ended."""
    code = (code or '').upper()
    with lock_for(code):
        session = get_session(code)
        if not session:
            return False
        try:
            db.session.delete(session)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        socketio.emit('session_ended', {'session_code': code}, to=room_for(code), namespace='/ws')
    with _locks_guard:
        _session_locks.pop(code, None)
    current_app.logger.info(f"[session-end] session={code}")
    return True


def prune_idle_sessions(ttl_sec: int) -> int:
    cutoff = time.time() - ttl_sec
    idle = GameSession.query.filter(GameSession.updated_at < cutoff).all()
    removed = 0
    for session in idle:
        if end_session(session.session_code):
            removed += 1
    current_app.logger.info(f"[session-prune] ttl={ttl_sec}s removed={removed}")
    return removed
