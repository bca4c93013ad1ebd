import threading
import time
from typing import Optional, Set

from playhall import socketio
from .letter_catch import SCENE_GAME
from .utils import clamp
from .sessions import apply, get_session, SessionNotFoundError


_running_loops: Set[str] = set()
_loops_guard = threading.Lock()


def ensure_session_loop(app, session_code: str) -> None:
    """Start the server clock for a session in the game scene.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - No-ops when TICK_INTERVAL_SEC is 0 (clients drive /tick themselves)
    - Ensures a single loop per session code
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return
    interval = float(app.config.get('TICK_INTERVAL_SEC', 0) or 0)
    if interval <= 0:
        return

    code = session_code.upper()
    with _loops_guard:
        if code in _running_loops:
            app.logger.debug(f"[tick-loop-skip] session={code} already running")
            return
        _running_loops.add(code)
    app.logger.info(f"[tick-loop-start] session={code} interval={interval}s")

    if app.config.get('TESTING'):
        run_session_loop(app, code, max_ticks=int(app.config.get('SCHEDULER_MAX_TICKS_IN_TESTS', 1)))
    else:
        socketio.start_background_task(run_session_loop, app, code)


def run_session_loop(app, session_code: str, max_ticks: Optional[int] = None) -> int:
    """Tick a session until it leaves the game scene, disappears, or
    ``max_ticks`` have run. Returns the number of ticks applied."""
    code = session_code.upper()
    interval = float(app.config.get('TICK_INTERVAL_SEC', 0.1) or 0.1)
    with _loops_guard:
        _running_loops.add(code)

    ticks = 0
    last = time.monotonic()
    try:
        while max_ticks is None or ticks < max_ticks:
            time.sleep(interval)
            now = time.monotonic()
            dt, last = now - last, now
            with app.app_context():
                session = get_session(code)
                if not session or session.scene != SCENE_GAME:
                    app.logger.info(f"[tick-loop-stop] session={code} scene={session.scene if session else None}")
                    break
                try:
                    apply(code, lambda game: game.tick(clamp(dt, 0, game.rules.max_tick)), schedule=False)
                except SessionNotFoundError:
                    app.logger.info(f"[tick-loop-stop] session={code} removed")
                    break
            ticks += 1
    finally:
        with _loops_guard:
            _running_loops.discard(code)

    if max_ticks is None:
        # A resume can land between the scene check and the discard above
        with app.app_context():
            session = get_session(code)
            if session and session.scene == SCENE_GAME:
                ensure_session_loop(app, code)
    return ticks


def is_running(session_code: str) -> bool:
    with _loops_guard:
        return session_code.upper() in _running_loops
