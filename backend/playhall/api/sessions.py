from flask import Blueprint, jsonify, request, current_app
from playhall.catalog import get_game, LIVE
from playhall.services.games.letter_catch import GameRuleError
from playhall.services.games.sessions import (
    apply,
    create_session,
    end_session,
    require_session,
    SessionNotFoundError,
)


sessions = Blueprint('sessions', __name__)


def _run(game_code, action, status=200):
    """Apply an engine action to a session and render the outcome."""
    try:
        session, result = apply(game_code, action)
    except SessionNotFoundError as exc:
        return jsonify({'error': str(exc)}), 404
    except GameRuleError as exc:
        current_app.logger.info(f"[rule] session={game_code.upper()} {exc}")
        return jsonify({'error': str(exc)}), 400
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400
    payload = session.to_dict()
    if result is not None:
        payload['result'] = result
    return jsonify(payload), status


@sessions.route('/create', methods=['POST'])
def create():
    data = request.get_json(silent=True) or {}
    game_id = data.get('game_id') or 'abc-learning'
    game = get_game(game_id)
    if not game:
        return jsonify({'error': 'Game not found'}), 404
    if game['status'] != LIVE:
        return jsonify({'error': 'This game is coming soon!'}), 400
    player_name = data.get('player_name')
    if player_name is not None:
        player_name = str(player_name).strip()[:64] or None
    session = create_session(game_id=game_id, player_name=player_name)
    return jsonify(session.to_dict()), 201


@sessions.route('/<string:game_code>/state', methods=['GET'])
def get_state(game_code):
    try:
        session = require_session(game_code)
    except SessionNotFoundError as exc:
        return jsonify({'error': str(exc)}), 404
    return jsonify(session.to_dict())


@sessions.route('/<string:game_code>/history', methods=['GET'])
def get_history(game_code):
    try:
        session = require_session(game_code)
    except SessionNotFoundError as exc:
        return jsonify({'error': str(exc)}), 404
    snapshot = session.snapshot
    return jsonify({
        'session_code': session.session_code,
        'score': session.score,
        'completed_letters': snapshot.get('completed_letters', []),
    })


# ---- scene transitions ----

@sessions.route('/<string:game_code>/play', methods=['POST'])
def play(game_code):
    return _run(game_code, lambda game: game.play())


@sessions.route('/<string:game_code>/settings', methods=['POST'])
def open_settings(game_code):
    return _run(game_code, lambda game: game.open_settings())


@sessions.route('/<string:game_code>/settings/toggle', methods=['POST'])
def toggle_letter(game_code):
    data = request.get_json(silent=True) or {}
    letter = data.get('letter')
    if not letter:
        return jsonify({'error': 'letter is required'}), 400
    if not isinstance(letter, str):
        return jsonify({'error': 'letter must be a string'}), 400
    return _run(game_code, lambda game: {'letter': letter.upper(), 'selected': game.toggle_letter(letter)})


@sessions.route('/<string:game_code>/settings/select-all', methods=['POST'])
def select_all(game_code):
    return _run(game_code, lambda game: game.select_all())


@sessions.route('/<string:game_code>/settings/clear-all', methods=['POST'])
def clear_all(game_code):
    return _run(game_code, lambda game: game.clear_all())


@sessions.route('/<string:game_code>/settings/start', methods=['POST'])
def start_game(game_code):
    return _run(game_code, lambda game: game.start_game())


@sessions.route('/<string:game_code>/settings/back', methods=['POST'])
def back(game_code):
    return _run(game_code, lambda game: game.back())


@sessions.route('/<string:game_code>/pause', methods=['POST'])
def pause(game_code):
    return _run(game_code, lambda game: game.pause())


@sessions.route('/<string:game_code>/resume', methods=['POST'])
def resume(game_code):
    return _run(game_code, lambda game: game.resume())


@sessions.route('/<string:game_code>/main-menu', methods=['POST'])
def main_menu(game_code):
    return _run(game_code, lambda game: game.main_menu())


# ---- game scene ----

@sessions.route('/<string:game_code>/tick', methods=['POST'])
def tick(game_code):
    data = request.get_json(silent=True) or {}
    try:
        dt = float(data.get('dt'))
    except (TypeError, ValueError):
        return jsonify({'error': 'dt (seconds) is required'}), 400

    def _tick(game):
        grounded = game.tick(dt)
        return {'grounded': [l.id for l in grounded]}

    return _run(game_code, _tick)


@sessions.route('/<string:game_code>/click', methods=['POST'])
def click(game_code):
    data = request.get_json(silent=True) or {}
    letter_id = data.get('letter_id')
    if letter_id is not None:
        try:
            letter_id = int(letter_id)
        except (TypeError, ValueError):
            return jsonify({'error': 'letter_id must be an integer'}), 400
        return _run(game_code, lambda game: game.click(letter_id))
    if data.get('x') is None or data.get('y') is None:
        return jsonify({'error': 'letter_id or x/y is required'}), 400
    try:
        x, y = float(data['x']), float(data['y'])
    except (TypeError, ValueError):
        return jsonify({'error': 'x and y must be numbers'}), 400
    return _run(game_code, lambda game: game.click_at(x, y))


@sessions.route('/<string:game_code>/leave', methods=['POST'])
def leave(game_code):
    if not end_session(game_code):
        return jsonify({'error': f'Session {game_code.upper()} not found'}), 404
    return jsonify({'message': 'You have left the game.'}), 200
