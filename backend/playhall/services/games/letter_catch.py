"""ABC Learning: catch the falling letter that matches the target.

The engine is a plain object with no Flask or database imports. Routes and
socket handlers load it from a session snapshot, call one operation, and
save it back (see ``sessions.py``).

Scene flow::

    start -> settings -> game
    start -> game -> pausemenu -> game (resume keeps the hit count)
    pausemenu -> settings | start (main menu resets score and progress)
"""

import random
import string
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from .utils import choose


ALPHABET: List[str] = list(string.ascii_uppercase)

SCENE_START = 'start'
SCENE_SETTINGS = 'settings'
SCENE_GAME = 'game'
SCENE_PAUSE = 'pausemenu'
SCENES = (SCENE_START, SCENE_SETTINGS, SCENE_GAME, SCENE_PAUSE)

PALETTE: List[Tuple[int, int, int]] = [
    (255, 100, 100),  # red
    (100, 255, 100),  # green
    (100, 100, 255),  # blue
    (255, 255, 100),  # yellow
    (255, 100, 255),  # pink
    (100, 255, 255),  # cyan
]
WRONG_COLOR = (255, 0, 0)

# Click outcomes
CAUGHT = 'caught'
LETTER_COMPLETE = 'letter_complete'
WRONG = 'wrong'
IGNORED = 'ignored'
MISSED = 'missed'

# Shortest spawn loop period, in seconds
MIN_SPAWN_INTERVAL = 0.05


class GameRuleError(Exception):
    """Base class for operations the current game state does not allow."""


class InvalidSceneError(GameRuleError):
    def __init__(self, action: str, scene: str, expected: Tuple[str, ...]):
        self.action = action
        self.scene = scene
        self.expected = expected
        super().__init__(f"Cannot {action} from the '{scene}' scene")


class EmptySelectionError(GameRuleError):
    def __init__(self):
        super().__init__('Select at least one letter to practice')


@dataclass
class GameRules:
    width: int = 800
    height: int = 600
    ground_height: int = 100
    hits_needed: int = 10
    points_per_catch: int = 10
    target_chance: float = 0.4
    spawn_interval: float = 1.5
    initial_spawns: Tuple[float, ...] = (0.5, 1.0)
    fall_speed: float = 200.0
    spawn_margin: int = 50
    spawn_y: float = -50.0
    letter_size: int = 72
    max_tick: float = 5.0

    def __post_init__(self):
        if self.spawn_interval < MIN_SPAWN_INTERVAL:
            raise ValueError(f'spawn_interval must be at least {MIN_SPAWN_INTERVAL} seconds')
        if self.hits_needed < 1:
            raise ValueError('hits_needed must be at least 1')

    @property
    def ground_y(self) -> float:
        return self.height - self.ground_height

    @classmethod
    def from_config(cls, config) -> 'GameRules':
        """Build rules from a Flask config mapping, keeping defaults for missing keys."""
        defaults = cls()
        return cls(
            hits_needed=int(config.get('HITS_NEEDED', defaults.hits_needed)),
            points_per_catch=int(config.get('POINTS_PER_CATCH', defaults.points_per_catch)),
            target_chance=float(config.get('TARGET_SPAWN_CHANCE', defaults.target_chance)),
            spawn_interval=float(config.get('SPAWN_INTERVAL_SEC', defaults.spawn_interval)),
            fall_speed=float(config.get('FALL_SPEED', defaults.fall_speed)),
        )


@dataclass
class FallingLetter:
    id: int
    value: str
    x: float
    y: float
    color: Tuple[int, int, int]
    fall_speed: float
    clicked: bool = False

    def contains(self, x: float, y: float, size: int) -> bool:
        half_w = size * 0.6 / 2
        half_h = size / 2
        return abs(x - self.x) <= half_w and abs(y - self.y) <= half_h

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['color'] = list(self.color)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FallingLetter':
        return cls(
            id=int(data['id']),
            value=data['value'],
            x=float(data['x']),
            y=float(data['y']),
            color=tuple(data['color']),
            fall_speed=float(data['fall_speed']),
            clicked=bool(data.get('clicked', False)),
        )


@dataclass
class LetterCatchGame:
    rules: GameRules = field(default_factory=GameRules)
    rng: random.Random = field(default_factory=random.Random, repr=False)

    scene: str = SCENE_START
    score: int = 0
    current_letter: str = 'A'
    current_letter_index: int = 0
    hits_on_current_letter: int = 0
    is_resuming: bool = False
    selected_letters: List[str] = field(default_factory=lambda: list(ALPHABET))
    pending_selection: List[str] = field(default_factory=list)

    letters: List[FallingLetter] = field(default_factory=list)
    next_letter_id: int = 1
    clock: float = 0.0
    next_loop_at: float = 0.0
    pending_spawns: List[float] = field(default_factory=list)

    completed_letters: List[Dict[str, Any]] = field(default_factory=list)
    effects: List[Dict[str, Any]] = field(default_factory=list, repr=False)

    # ---- scene transitions ----

    def _require(self, action: str, *scenes: str) -> None:
        if self.scene not in scenes:
            raise InvalidSceneError(action, self.scene, scenes)

    def _go(self, scene: str) -> None:
        self.scene = scene
        self.letters = []
        self.pending_spawns = []
        if scene == SCENE_SETTINGS:
            self.pending_selection = list(self.selected_letters)
        elif scene == SCENE_GAME:
            self._enter_game()

    def _enter_game(self) -> None:
        self.current_letter = self.selected_letters[self.current_letter_index]
        if not self.is_resuming:
            self.hits_on_current_letter = 0
        self.is_resuming = False
        self.clock = 0.0
        self.next_loop_at = 0.0
        self.pending_spawns = sorted(self.rules.initial_spawns)

    def play(self) -> None:
        self._require('play', SCENE_START)
        self._go(SCENE_GAME)

    def open_settings(self) -> None:
        self._require('open settings', SCENE_START, SCENE_PAUSE)
        self._go(SCENE_SETTINGS)

    def pause(self) -> None:
        self._require('pause', SCENE_GAME)
        self._go(SCENE_PAUSE)

    def resume(self) -> None:
        self._require('resume', SCENE_PAUSE)
        self.is_resuming = True
        self._go(SCENE_GAME)

    def main_menu(self) -> None:
        self._require('return to the main menu', SCENE_PAUSE)
        self.score = 0
        self.current_letter_index = 0
        self.hits_on_current_letter = 0
        self._go(SCENE_START)

    # ---- settings scene ----

    def toggle_letter(self, letter: str) -> bool:
        """Flip a letter in the pending selection. Returns the new selected state."""
        self._require('change letters', SCENE_SETTINGS)
        if not isinstance(letter, str):
            raise GameRuleError(f'{letter!r} is not a letter of the alphabet')
        letter = letter.upper()
        if letter not in ALPHABET:
            raise GameRuleError(f"'{letter}' is not a letter of the alphabet")
        if letter in self.pending_selection:
            self.pending_selection = [l for l in self.pending_selection if l != letter]
            return False
        self.pending_selection.append(letter)
        return True

    def select_all(self) -> None:
        self._require('change letters', SCENE_SETTINGS)
        self.pending_selection = list(ALPHABET)

    def clear_all(self) -> None:
        self._require('change letters', SCENE_SETTINGS)
        self.pending_selection = []

    def start_game(self) -> None:
        self._require('start the game', SCENE_SETTINGS)
        if not self.pending_selection:
            self._effect('shake', intensity=10)
            raise EmptySelectionError()
        self.selected_letters = list(self.pending_selection)
        self.current_letter_index = 0
        self._go(SCENE_GAME)

    def back(self) -> None:
        self._require('go back', SCENE_SETTINGS)
        self._go(SCENE_START)

    # ---- game scene ----

    def random_letter(self) -> str:
        return choose(self.selected_letters, self.rng)

    def next_letter(self) -> str:
        self.current_letter_index = (self.current_letter_index + 1) % len(self.selected_letters)
        return self.selected_letters[self.current_letter_index]

    def spawn_letter(self, value: Optional[str] = None) -> FallingLetter:
        self._require('spawn letters', SCENE_GAME)
        if value is None:
            if self.rng.random() < self.rules.target_chance:
                value = self.current_letter
            else:
                value = self.random_letter()
        low = self.rules.spawn_margin
        high = self.rules.width - self.rules.spawn_margin
        letter = FallingLetter(
            id=self.next_letter_id,
            value=value,
            x=low + self.rng.random() * (high - low),
            y=self.rules.spawn_y,
            color=choose(PALETTE, self.rng),
            fall_speed=self.rules.fall_speed,
        )
        self.next_letter_id += 1
        self.letters.append(letter)
        return letter

    def _next_timer_at(self) -> float:
        if self.pending_spawns:
            return min(self.pending_spawns[0], self.next_loop_at)
        return self.next_loop_at

    def tick(self, dt: float) -> List[FallingLetter]:
        """Advance the game clock by ``dt`` seconds.

        Returns the letters that reached the ground during this tick.
        """
        dt = float(dt)
        if dt < 0 or dt > self.rules.max_tick:
            raise ValueError(f'dt must be between 0 and {self.rules.max_tick} seconds')
        if self.scene != SCENE_GAME:
            return []

        grounded: List[FallingLetter] = []
        target = self.clock + dt
        while True:
            step_end = min(target, self._next_timer_at())
            step = step_end - self.clock
            if step > 0:
                grounded.extend(self._fall(step))
                self.clock = step_end
            if self.clock < self._next_timer_at():
                break
            self._fire_due_timers()
        return grounded

    def _fall(self, step: float) -> List[FallingLetter]:
        grounded = []
        remaining = []
        for letter in self.letters:
            letter.y += letter.fall_speed * step
            if letter.y >= self.rules.ground_y:
                grounded.append(letter)
            else:
                remaining.append(letter)
        self.letters = remaining
        return grounded

    def _fire_due_timers(self) -> None:
        while self.pending_spawns and self.pending_spawns[0] <= self.clock:
            self.pending_spawns.pop(0)
            self.spawn_letter()
        if self.next_loop_at <= self.clock:
            self.next_loop_at += self.rules.spawn_interval
            self.spawn_letter()

    def find_letter(self, letter_id: int) -> Optional[FallingLetter]:
        for letter in self.letters:
            if letter.id == letter_id:
                return letter
        return None

    def letters_at(self, x: float, y: float) -> List[FallingLetter]:
        """Unclicked letters whose hit box contains the point, oldest first."""
        return [
            letter for letter in self.letters
            if not letter.clicked and letter.contains(x, y, self.rules.letter_size)
        ]

    def click_at(self, x: float, y: float) -> Dict[str, Any]:
        """Click every letter under the point, in spawn order.

        ``outcome`` and ``letter_id`` describe the first letter handled and
        ``results`` holds one click result per letter.
        """
        self._require('click letters', SCENE_GAME)
        results = [self.click(letter.id) for letter in self.letters_at(float(x), float(y))]
        if not results:
            return {'outcome': MISSED, 'letter_id': None, 'results': []}
        return dict(results[0], results=results)

    def click(self, letter_id: int) -> Dict[str, Any]:
        self._require('click letters', SCENE_GAME)
        letter = self.find_letter(int(letter_id))
        if letter is None:
            return {'outcome': MISSED, 'letter_id': letter_id}
        if letter.clicked:
            return {'outcome': IGNORED, 'letter_id': letter.id}
        letter.clicked = True

        if letter.value != self.current_letter:
            letter.color = WRONG_COLOR
            self._effect('shake', intensity=10)
            return {'outcome': WRONG, 'letter_id': letter.id, 'value': letter.value}

        self.score += self.rules.points_per_catch
        self.hits_on_current_letter += 1
        self._effect('kaboom', x=letter.x, y=letter.y)
        self.letters.remove(letter)

        if self.hits_on_current_letter < self.rules.hits_needed:
            return {'outcome': CAUGHT, 'letter_id': letter.id, 'value': letter.value}

        finished = self.current_letter
        self.hits_on_current_letter = 0
        self.current_letter = self.next_letter()
        self.completed_letters.append({'letter': finished, 'score': self.score})
        self._effect('shake', intensity=5)
        return {
            'outcome': LETTER_COMPLETE,
            'letter_id': letter.id,
            'value': letter.value,
            'next_letter': self.current_letter,
        }

    # ---- effects and snapshots ----

    def _effect(self, kind: str, **data) -> None:
        self.effects.append(dict(data, type=kind))

    def drain_effects(self) -> List[Dict[str, Any]]:
        drained, self.effects = self.effects, []
        return drained

    def hud(self) -> Dict[str, str]:
        return {
            'target': f'Find: {self.current_letter}',
            'progress': f'{self.hits_on_current_letter}/{self.rules.hits_needed}',
            'score': f'Score: {self.score}',
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scene': self.scene,
            'score': self.score,
            'current_letter': self.current_letter,
            'current_letter_index': self.current_letter_index,
            'hits_on_current_letter': self.hits_on_current_letter,
            'hits_needed': self.rules.hits_needed,
            'is_resuming': self.is_resuming,
            'selected_letters': list(self.selected_letters),
            'pending_selection': list(self.pending_selection),
            'letters': [l.to_dict() for l in self.letters],
            'next_letter_id': self.next_letter_id,
            'clock': self.clock,
            'next_loop_at': self.next_loop_at,
            'pending_spawns': list(self.pending_spawns),
            'completed_letters': list(self.completed_letters),
            'playfield': {
                'width': self.rules.width,
                'height': self.rules.height,
                'ground_y': self.rules.ground_y,
            },
            'hud': self.hud(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], rules: Optional[GameRules] = None,
                  rng: Optional[random.Random] = None) -> 'LetterCatchGame':
        game = cls(rules=rules or GameRules(), rng=rng or random.Random())
        scene = data.get('scene', SCENE_START)
        if scene not in SCENES:
            raise ValueError(f'unknown scene {scene!r}')
        game.scene = scene
        game.score = int(data.get('score', 0))
        game.current_letter = data.get('current_letter', 'A')
        game.current_letter_index = int(data.get('current_letter_index', 0))
        game.hits_on_current_letter = int(data.get('hits_on_current_letter', 0))
        game.is_resuming = bool(data.get('is_resuming', False))
        game.selected_letters = list(data.get('selected_letters') or ALPHABET)
        game.pending_selection = list(data.get('pending_selection') or [])
        game.letters = [FallingLetter.from_dict(l) for l in data.get('letters', [])]
        game.next_letter_id = int(data.get('next_letter_id', 1))
        game.clock = float(data.get('clock', 0.0))
        game.next_loop_at = float(data.get('next_loop_at', 0.0))
        game.pending_spawns = [float(t) for t in data.get('pending_spawns', [])]
        game.completed_letters = list(data.get('completed_letters', []))
        return game
