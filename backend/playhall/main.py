from flask import Blueprint, request, jsonify
from playhall.catalog import filter_games, get_game, to_card

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': "Welcome to L&M's Playhall!"})

@main.route('/api/catalog', methods=['GET'])
def list_games():
    category = request.args.get('category', 'all')
    return jsonify([to_card(g) for g in filter_games(category)])

@main.route('/api/catalog/<string:game_id>', methods=['GET'])
def game_detail(game_id):
    game = get_game(game_id)
    if not game:
        return jsonify({'error': 'Game not found'}), 404
    return jsonify(to_card(game))
