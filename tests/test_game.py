import threading

import pytest

from kotla.errors import DuplicateGuessError, PersistenceError, UnknownCityError
from kotla.game import MAX_GUESS_COUNT, GameState, KotlaGame, win_message
from kotla.storage import GameStateRecord, JsonStore

from conftest import TEST_CITIES, FakeSeedSource

WRONG_GUESSES = ["Surabaya", "Bandung", "Medan", "Makassar", "Denpasar", "Palembang"]


@pytest.fixture
def game(cities, store, seed_source, presenter, clock):
    g = KotlaGame(
        cities=cities,
        store=store,
        seed_source=seed_source,
        presenter=presenter,
        today=clock,
        terminal_delay=0,
    )
    g.start()
    g.selector.wait(5)
    yield g
    g.close()


def reopen(game, store=None, seed_source=None):
    return KotlaGame(
        cities=game.cities,
        store=store or game.store,
        seed_source=seed_source or FakeSeedSource(),
        presenter=game.presenter,
        today=game.selector._today,
        terminal_delay=0,
    ).start()


def test_starts_in_progress(game):
    assert not game.is_loading
    assert game.city_of_the_day.name == "Jakarta"
    assert game.game_state == "in_progress"
    assert game.guesses == []
    assert game.date == "2026-10-19"


def test_wrong_then_right_guess_wins(game, presenter):
    result = game.submit_guess("Surabaya")
    assert result.state == "in_progress"
    assert [c.name for c in game.guesses] == ["Surabaya"]

    result = game.submit_guess("jakarta")
    assert result.state == "won"
    assert result.guess_count == 2
    assert game.game_state == "won"

    stats = game.all_time_stats
    assert (stats.play_count, stats.win_count) == (1, 1)
    assert dict(stats.guess_distribution)[2] == 1
    assert ("success", win_message(2)) in presenter.notifications


@pytest.mark.parametrize("attempt", range(1, MAX_GUESS_COUNT + 1))
def test_win_on_any_attempt(game, attempt):
    for name in WRONG_GUESSES[: attempt - 1]:
        game.submit_guess(name)
    result = game.submit_guess("JAKARTA")
    assert result.state == "won"
    assert result.guess_count == attempt
    assert dict(game.all_time_stats.guess_distribution)[attempt] == 1


def test_six_wrong_guesses_lose(game, presenter):
    for name in WRONG_GUESSES[:-1]:
        assert game.submit_guess(name).state == "in_progress"
    result = game.submit_guess(WRONG_GUESSES[-1])

    assert result.state == "lost"
    assert len(game.guesses) == MAX_GUESS_COUNT
    stats = game.all_time_stats
    assert (stats.play_count, stats.win_count, stats.current_streak) == (1, 0, 0)
    assert ("error", "Out of attempts. Today's Kotla was: Jakarta") in presenter.notifications


def test_no_guesses_after_game_over(game):
    game.submit_guess("Jakarta")
    assert game.submit_guess("Surabaya") is None
    assert len(game.guesses) == 1
    assert game.all_time_stats.play_count == 1


def test_unknown_city_is_rejected(game, presenter):
    with pytest.raises(UnknownCityError):
        game.submit_guess("Atlantis")
    assert game.guesses == []
    assert presenter.notifications == [("error", "City is not in the Kotla list")]


def test_duplicate_guess_is_rejected(game):
    game.submit_guess("Surabaya")
    game.submit_guess("Medan")
    with pytest.raises(DuplicateGuessError):
        game.submit_guess("surabaya ")
    assert len(game.guesses) == 2
    assert game.game_state == "in_progress"


def test_blank_guess_is_ignored(game, store):
    assert game.submit_guess("") is None
    assert game.submit_guess("   ") is None
    assert store.restore_game_state() is None


def test_guess_ignored_until_target_resolved(cities, store, presenter, clock):
    game = KotlaGame(cities=cities, store=store, seed_source=FakeSeedSource(error="offline"),
                     presenter=presenter, today=clock, terminal_delay=0)
    game.start()
    game.selector.wait(5)
    assert game.has_error
    assert game.submit_guess("Jakarta") is None
    assert game.guesses == []


def test_every_guess_is_saved_and_resumed(game, store):
    game.submit_guess("Surabaya")
    game.submit_guess("Medan")
    assert store.restore_game_state() == GameStateRecord("2026-10-19", ("Surabaya", "Medan"), "in_progress")

    resumed = reopen(game)
    assert [c.name for c in resumed.guesses] == ["Surabaya", "Medan"]
    resumed.selector.wait(5)
    assert resumed.submit_guess("Jakarta").guess_count == 3


def test_finished_game_stays_finished_after_reload(game):
    game.submit_guess("Jakarta")
    resumed = reopen(game)
    resumed.selector.wait(5)
    assert resumed.game_state == "won"
    assert resumed.submit_guess("Medan") is None


def test_new_day_starts_fresh(game, clock, seed_source):
    game.submit_guess("Jakarta")
    clock.advance()
    assert game.game_state == "in_progress"
    assert game.guesses == []
    assert game.date == "2026-10-20"
    # The target for the new day is not resolved yet.
    assert game.submit_guess("Medan") is None

    game.retry_target()
    assert game.submit_guess("Medan").state == "in_progress"
    assert game.all_time_stats.play_count == 1


def test_win_schedules_stats_and_celebration(game, presenter):
    game.submit_guess("Jakarta")
    assert presenter.after_game.wait(5)
    for timer in game._timers:
        timer.join(5)
    assert presenter.stats_shown == 1
    assert presenter.celebrations == 1


def test_loss_shows_stats_without_celebration(game, presenter):
    for name in WRONG_GUESSES:
        game.submit_guess(name)
    assert presenter.after_game.wait(5)
    for timer in game._timers:
        timer.join(5)
    assert presenter.celebrations == 0


def test_close_cancels_pending_task(cities, store, seed_source, presenter, clock):
    game = KotlaGame(cities=cities, store=store, seed_source=seed_source,
                     presenter=presenter, today=clock, terminal_delay=60)
    with game:
        game.selector.wait(5)
        game.submit_guess("Jakarta")
    assert not presenter.after_game.wait(0.2)
    assert presenter.celebrations == 0


def test_save_failure_is_reported_but_guess_applies(cities, seed_source, presenter, clock, tmp_path):
    class FailingStore(JsonStore):
        def store_game_state(self, record):
            raise PersistenceError("disk full")

    game = KotlaGame(cities=cities, store=FailingStore(tmp_path), seed_source=seed_source,
                     presenter=presenter, today=clock, terminal_delay=0)
    game.start()
    game.selector.wait(5)

    with pytest.raises(PersistenceError):
        game.submit_guess("Jakarta")

    assert game.game_state == "won"
    assert game.all_time_stats.win_count == 1
    assert ("error", "Progress could not be saved on this device") in presenter.notifications
    game.close()


def test_rows_and_share_text(game):
    game.submit_guess("Surabaya")
    game.submit_guess("Jakarta")
    rows = game.rows()
    assert [r.is_correct for r in rows] == [False, True]
    assert rows[0].direction.label == "west"
    assert game.share_text().splitlines()[0] == "Kotla 2026-10-19 2/6"


def test_stored_unknown_city_is_dropped(cities, store, presenter, clock):
    store.store_game_state(GameStateRecord("2026-10-19", ("Atlantis", "Medan", "medan"), "in_progress"))
    restored = GameState.from_record(store.restore_game_state(), cities)
    assert [c.name for c in restored.guesses] == ["Medan"]


def test_full_stored_game_in_progress_loads_as_lost(game, store):
    store.store_game_state(GameStateRecord("2026-10-19", tuple(WRONG_GUESSES), "in_progress"))
    resumed = reopen(game)
    resumed.selector.wait(5)
    assert resumed.game_state == "lost"
    assert len(resumed.guesses) == MAX_GUESS_COUNT
    assert resumed.submit_guess("Jakarta") is None
    resumed.close()


def test_concurrent_guesses_are_serialised(game):
    wrong = [c.name for c in TEST_CITIES if c.name != "Jakarta"]
    barrier = threading.Barrier(len(wrong))
    results = []

    def guess(name):
        barrier.wait()
        results.append(game.submit_guess(name))

    threads = [threading.Thread(target=guess, args=(name,)) for name in wrong]
    for t in threads:
        t.start()
    for t in threads:
        t.join(5)

    played = [r for r in results if r is not None]
    assert len(game.guesses) == MAX_GUESS_COUNT
    assert len(played) == MAX_GUESS_COUNT
    assert [r.state for r in played].count("lost") == 1
    assert sorted(r.guess_count for r in played) == list(range(1, MAX_GUESS_COUNT + 1))
    assert game.all_time_stats.play_count == 1
    assert game.store.restore_all_time_stats().play_count == 1


def test_sessions_on_one_data_dir_see_each_others_guesses(game):
    other = reopen(game)
    other.selector.wait(5)
    game.submit_guess("Surabaya")
    other.submit_guess("Medan")
    assert [c.name for c in other.guesses] == ["Surabaya", "Medan"]
    with pytest.raises(DuplicateGuessError):
        other.submit_guess("Surabaya")

    game.refresh()
    assert [c.name for c in game.guesses] == ["Surabaya", "Medan"]
    other.close()


def test_sessions_on_one_data_dir_keep_all_plays(game, store, clock):
    other = reopen(game)
    other.selector.wait(5)
    assert game.submit_guess("Jakarta").state == "won"

    clock.advance()
    other.retry_target()
    assert other.submit_guess("Jakarta").state == "won"

    stats = store.restore_all_time_stats()
    assert (stats.play_count, stats.win_count, stats.current_streak) == (2, 2, 2)
    game.refresh()
    assert game.all_time_stats == stats
    other.close()


def test_after_game_task_pending_until_it_runs(cities, store, seed_source, presenter, clock):
    game = KotlaGame(cities=cities, store=store, seed_source=seed_source,
                     presenter=presenter, today=clock, terminal_delay=60)
    game.start()
    game.selector.wait(5)
    assert not game.after_game_pending
    game.submit_guess("Jakarta")
    assert game.after_game_pending
    game.close()
    assert not game.after_game_pending
