import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///playhall.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # ABC Learning tunables
    HITS_NEEDED = int(os.environ.get('HITS_NEEDED', '10'))
    POINTS_PER_CATCH = int(os.environ.get('POINTS_PER_CATCH', '10'))
    SPAWN_INTERVAL_SEC = float(os.environ.get('SPAWN_INTERVAL_SEC', '1.5'))
    TARGET_SPAWN_CHANCE = float(os.environ.get('TARGET_SPAWN_CHANCE', '0.4'))
    FALL_SPEED = float(os.environ.get('FALL_SPEED', '200'))
    # Server clock for the game scene (seconds). 0 disables; clients then drive /tick.
    TICK_INTERVAL_SEC = float(os.environ.get('TICK_INTERVAL_SEC', '0.1'))
    # Sessions untouched for this long are removed by `flask sessions-prune`
    SESSION_IDLE_TTL_SEC = int(os.environ.get('SESSION_IDLE_TTL_SEC', '3600'))
    # Grace period before a disconnected owner's game is auto-paused (seconds)
    OWNER_GRACE_SEC = float(os.environ.get('OWNER_GRACE_SEC', '2'))
