import pytest

from playhall.services.games.letter_catch import (
    ALPHABET,
    CAUGHT,
    EmptySelectionError,
    GameRuleError,
    GameRules,
    IGNORED,
    InvalidSceneError,
    LETTER_COMPLETE,
    LetterCatchGame,
    MISSED,
    PALETTE,
    WRONG,
    WRONG_COLOR,
)


class SequenceRng:
    """Feeds predetermined values to the engine instead of random ones."""

    def __init__(self, values):
        self.values = list(values)

    def random(self):
        return self.values.pop(0)


def _game_with_letters(letters, **rules):
    game = LetterCatchGame(rules=GameRules(**rules))
    game.open_settings()
    game.clear_all()
    for letter in letters:
        game.toggle_letter(letter)
    game.start_game()
    return game


def test_new_game_starts_on_start_scene_with_full_alphabet():
    game = LetterCatchGame()
    assert game.scene == 'start'
    assert game.selected_letters == ALPHABET
    assert game.score == 0


def test_play_enters_game_and_schedules_spawns():
    game = LetterCatchGame()
    game.play()
    assert game.scene == 'game'
    assert game.current_letter == 'A'
    assert game.hits_on_current_letter == 0
    assert game.pending_spawns == [0.5, 1.0]
    assert game.next_loop_at == 0.0
    assert game.letters == []
    # The spawn loop fires as soon as the scene starts
    game.tick(0.0)
    assert len(game.letters) == 1
    assert game.next_loop_at == 1.5


def test_timers_spawn_letters_and_letters_fall():
    game = LetterCatchGame()
    game.play()
    game.tick(0.0)
    assert len(game.letters) == 1
    game.tick(0.5)
    assert len(game.letters) == 2
    game.tick(0.5)
    assert len(game.letters) == 3
    game.tick(0.5)
    assert len(game.letters) == 4
    # First letter spawned at 0s and has fallen for 1.5s
    assert game.letters[0].y == pytest.approx(-50 + 300)
    assert game.letters[-1].y == pytest.approx(-50)
    first = game.letters[0]
    grounded = game.tick(1.5)
    assert [l.id for l in grounded] == [first.id]
    assert len(game.letters) == 4


def test_one_long_tick_fires_every_due_timer():
    game = LetterCatchGame()
    game.play()
    grounded = game.tick(3.0)
    # 0, 0.5, 1.0, 1.5 and 3.0; the first one lands at 2.75
    assert len(grounded) == 1
    assert len(game.letters) == 4
    assert game.next_loop_at == pytest.approx(4.5)


def test_letter_is_removed_when_it_reaches_the_ground():
    game = LetterCatchGame()
    game.play()
    letter = game.spawn_letter('A')
    game.tick(2.7)
    assert game.find_letter(letter.id) is not None
    grounded = game.tick(0.1)
    assert letter.id in [l.id for l in grounded]
    assert game.find_letter(letter.id) is None


def test_spawn_prefers_target_letter_by_chance():
    game = _game_with_letters(['A', 'B', 'C'])
    game.rng = SequenceRng([0.1, 0.5, 0.0, 0.9, 0.99, 0.0, 0.5])
    first = game.spawn_letter()
    assert first.value == 'A'
    assert first.x == pytest.approx(400)
    assert first.y == -50
    assert first.color == PALETTE[0]
    second = game.spawn_letter()
    assert second.value == 'C'
    assert second.x == pytest.approx(50)
    assert second.color == PALETTE[3]


def test_correct_click_scores_and_removes_letter():
    game = _game_with_letters(['A'])
    letter = game.spawn_letter('A')
    result = game.click(letter.id)
    assert result['outcome'] == CAUGHT
    assert game.score == 10
    assert game.hits_on_current_letter == 1
    assert game.find_letter(letter.id) is None
    effects = game.drain_effects()
    assert effects == [{'type': 'kaboom', 'x': letter.x, 'y': letter.y}]
    assert game.drain_effects() == []


def test_wrong_click_marks_letter_red_and_keeps_it_falling():
    game = _game_with_letters(['A', 'B'])
    letter = game.spawn_letter('B')
    result = game.click(letter.id)
    assert result['outcome'] == WRONG
    assert game.score == 0
    assert letter.color == WRONG_COLOR
    assert letter.clicked
    assert game.find_letter(letter.id) is letter
    assert game.drain_effects() == [{'type': 'shake', 'intensity': 10}]
    # A clicked letter can't be clicked again
    assert game.click(letter.id)['outcome'] == IGNORED


def test_unknown_letter_is_a_miss():
    game = _game_with_letters(['A'])
    assert game.click(999)['outcome'] == MISSED


def test_hitting_threshold_moves_to_next_letter_and_wraps():
    game = _game_with_letters(['A', 'C'], hits_needed=2)
    assert game.current_letter == 'A'
    game.click(game.spawn_letter('A').id)
    result = game.click(game.spawn_letter('A').id)
    assert result['outcome'] == LETTER_COMPLETE
    assert result['next_letter'] == 'C'
    assert game.current_letter == 'C'
    assert game.current_letter_index == 1
    assert game.hits_on_current_letter == 0
    assert game.completed_letters == [{'letter': 'A', 'score': 20}]
    assert {'type': 'shake', 'intensity': 5} in game.drain_effects()

    game.click(game.spawn_letter('C').id)
    game.click(game.spawn_letter('C').id)
    assert game.current_letter == 'A'
    assert game.current_letter_index == 0
    assert game.score == 40


def test_click_at_handles_every_letter_under_the_point():
    game = _game_with_letters(['A', 'B'])
    first = game.spawn_letter('A')
    second = game.spawn_letter('A')
    for letter in (first, second):
        letter.x, letter.y = 300.0, 200.0
    result = game.click_at(310, 210)
    assert [r['letter_id'] for r in result['results']] == [first.id, second.id]
    assert [r['outcome'] for r in result['results']] == [CAUGHT, CAUGHT]
    assert result['letter_id'] == first.id
    assert game.score == 20
    assert game.letters == []
    assert game.click_at(700, 580)['outcome'] == MISSED


def test_click_at_skips_letters_already_clicked():
    game = _game_with_letters(['A', 'B'])
    wrong = game.spawn_letter('B')
    target = game.spawn_letter('A')
    for letter in (wrong, target):
        letter.x, letter.y = 300.0, 200.0
    result = game.click_at(300, 200)
    assert [r['outcome'] for r in result['results']] == [WRONG, CAUGHT]
    assert game.letters == [wrong]
    again = game.click_at(300, 200)
    assert again['outcome'] == MISSED
    assert again['results'] == []


def test_click_at_completing_a_letter_changes_the_target_mid_click():
    game = _game_with_letters(['A', 'B'], hits_needed=1)
    first = game.spawn_letter('A')
    second = game.spawn_letter('A')
    for letter in (first, second):
        letter.x, letter.y = 300.0, 200.0
    outcomes = [r['outcome'] for r in game.click_at(300, 200)['results']]
    assert outcomes == [LETTER_COMPLETE, WRONG]
    assert game.current_letter == 'B'


def test_settings_selection_is_committed_only_on_start():
    game = LetterCatchGame()
    game.open_settings()
    assert game.pending_selection == ALPHABET
    game.clear_all()
    assert game.toggle_letter('c') is True
    assert game.toggle_letter('A') is True
    game.back()
    assert game.scene == 'start'
    assert game.selected_letters == ALPHABET

    game.open_settings()
    game.clear_all()
    game.toggle_letter('C')
    game.toggle_letter('A')
    assert game.toggle_letter('A') is False
    game.toggle_letter('A')
    game.start_game()
    assert game.selected_letters == ['C', 'A']
    assert game.current_letter == 'C'


def test_start_with_empty_selection_shakes_and_stays():
    game = LetterCatchGame()
    game.open_settings()
    game.clear_all()
    with pytest.raises(EmptySelectionError):
        game.start_game()
    assert game.scene == 'settings'
    assert game.drain_effects() == [{'type': 'shake', 'intensity': 10}]
    game.select_all()
    game.start_game()
    assert game.scene == 'game'


def test_toggle_rejects_non_letters():
    game = LetterCatchGame()
    game.open_settings()
    with pytest.raises(Exception) as exc:
        game.toggle_letter('7')
    assert "not a letter" in str(exc.value)
    with pytest.raises(GameRuleError):
        game.toggle_letter(5)
    assert game.pending_selection == ALPHABET


def test_resume_keeps_hits_but_restarts_the_scene():
    game = _game_with_letters(['A'])
    game.click(game.spawn_letter('A').id)
    game.spawn_letter('A')
    game.tick(0.7)
    game.pause()
    assert game.scene == 'pausemenu'
    assert game.letters == []
    game.resume()
    assert game.scene == 'game'
    assert game.hits_on_current_letter == 1
    assert game.is_resuming is False
    assert game.letters == []
    assert game.clock == 0.0
    assert game.pending_spawns == [0.5, 1.0]
    assert game.next_loop_at == 0.0


def test_leaving_pause_through_settings_resets_hits_but_keeps_score():
    game = _game_with_letters(['A', 'B'])
    game.click(game.spawn_letter('A').id)
    game.pause()
    game.open_settings()
    game.back()
    game.play()
    assert game.hits_on_current_letter == 0
    assert game.score == 10


def test_main_menu_resets_progress_but_not_letter_choice():
    game = _game_with_letters(['B', 'D'], hits_needed=1)
    game.click(game.spawn_letter('B').id)
    assert game.current_letter == 'D'
    game.pause()
    game.main_menu()
    assert game.scene == 'start'
    assert game.score == 0
    assert game.current_letter_index == 0
    assert game.selected_letters == ['B', 'D']
    game.play()
    assert game.current_letter == 'B'


def test_operations_from_the_wrong_scene_are_rejected():
    game = LetterCatchGame()
    with pytest.raises(InvalidSceneError):
        game.pause()
    with pytest.raises(InvalidSceneError):
        game.click(1)
    with pytest.raises(InvalidSceneError):
        game.main_menu()
    game.play()
    with pytest.raises(InvalidSceneError):
        game.open_settings()


def test_tick_outside_game_scene_does_nothing():
    game = LetterCatchGame()
    assert game.tick(1.0) == []
    assert game.letters == []
    with pytest.raises(ValueError):
        game.tick(-0.1)
    with pytest.raises(ValueError):
        game.tick(60)


def test_snapshot_restores_a_game_in_progress():
    game = _game_with_letters(['A', 'B'])
    game.tick(1.2)
    game.click(game.spawn_letter('A').id)
    restored = LetterCatchGame.from_dict(game.to_dict())
    assert restored.to_dict() == game.to_dict()
    restored.tick(0.3)
    assert len(restored.letters) == len(game.letters) + 1
    assert game.to_dict()['hud'] == {'target': 'Find: A', 'progress': '1/10', 'score': 'Score: 10'}


def test_rules_from_config_and_validation():
    rules = GameRules.from_config({'HITS_NEEDED': '4', 'FALL_SPEED': '120'})
    assert rules.hits_needed == 4
    assert rules.fall_speed == 120.0
    assert rules.spawn_interval == 1.5
    assert rules.ground_y == 500
    with pytest.raises(ValueError):
        GameRules(spawn_interval=0)
    with pytest.raises(ValueError):
        GameRules(spawn_interval=0.01)
    assert GameRules(spawn_interval=0.05).spawn_interval == 0.05
