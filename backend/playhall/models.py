from playhall import db
import json
import string
import random
import time


def generate_session_code(length=4):
    """Generate a unique, short session code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not GameSession.query.filter_by(session_code=code).first():
            return code


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)
    session_code = db.Column(db.String(4), unique=True, index=True, nullable=False)
    game_id = db.Column(db.String(64), nullable=False, default='abc-learning')
    player_name = db.Column(db.String(64), nullable=True)
    scene = db.Column(db.String(32), nullable=False, default='start')  # start, settings, game, pausemenu
    score = db.Column(db.Integer, nullable=False, default=0)
    state = db.Column(db.Text, nullable=True)  # JSON-encoded engine snapshot
    created_at = db.Column(db.Float, nullable=False, default=time.time)
    updated_at = db.Column(db.Float, nullable=False, default=time.time)

    def __init__(self, **kwargs):
        super(GameSession, self).__init__(**kwargs)
        if not self.session_code:
            self.session_code = generate_session_code()

    @property
    def snapshot(self):
        try:
            return json.loads(self.state) if self.state else {}
        except ValueError:
            return {}

    def store_snapshot(self, snapshot):
        self.state = json.dumps(snapshot)
        self.scene = snapshot.get('scene', self.scene)
        self.score = int(snapshot.get('score', self.score or 0))
        self.updated_at = time.time()

    def to_dict(self):
        data = {
            'id': self.id,
            'session_code': self.session_code,
            'game_id': self.game_id,
            'player_name': self.player_name,
            'scene': self.scene,
            'score': self.score,
            'updated_at': self.updated_at,
        }
        data['game'] = self.snapshot
        return data
