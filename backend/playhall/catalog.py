"""Launcher catalog of the games served by the playhall."""

from typing import Dict, List, Optional

LIVE = 'live'
COMING_SOON = 'coming-soon'

GAMES: List[Dict[str, str]] = [
    {
        'id': 'abc-learning',
        'name': 'ABC Learning',
        'description': 'Learn the alphabet by catching falling letters! Practice letter recognition and hand-eye coordination.',
        'category': 'learning',
        'icon': '🔤',
        'path': 'games/abc-learning/index.html',
        'status': LIVE,
    },
]

CATEGORY_LABELS = {
    'learning': '📚 Learning',
    'focus': '🎯 Focus',
    'relaxation': '🧘 Relaxation',
}


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, category)


def filter_games(category: Optional[str] = None, games: Optional[List[Dict[str, str]]] = None) -> List[Dict[str, str]]:
    games = GAMES if games is None else games
    if not category or category == 'all':
        return list(games)
    return [g for g in games if g['category'] == category]


def get_game(game_id: str) -> Optional[Dict[str, str]]:
    return next((g for g in GAMES if g['id'] == game_id), None)


def to_card(game: Dict[str, str]) -> Dict[str, str]:
    card = dict(game)
    card['category_label'] = category_label(game['category'])
    # Coming-soon cards are not linked
    if game['status'] == COMING_SOON:
        card['path'] = None
    return card
