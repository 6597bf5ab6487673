import asyncio
import threading

from shiritori.dictionary import DictionaryLookup, DictionaryService
from shiritori.errors import LookupFailure, WordNotFound
from shiritori.managers.game import GameManager
from shiritori.schemas import GameState

from conftest import wait_until


def _blocking_fetch(release, definition='late'):
    def fetch(word):
        release.wait(2)
        return definition
    return fetch


def test_scenario_a_accepted_word(make_game, sio):
    game = make_game(DictionaryService({'test': 'a trial'}))

    async def scenario():
        await game.reset()
        status = await game.submit('test')
        await game.close()
        return status

    status = asyncio.run(scenario())
    state = game.state
    assert [e.model_dump() for e in state.history] == [{'word': 'test', 'submittedBy': 'p1', 'definition': 'a trial'}]
    assert state.scores == {'p1': 1, 'p2': 0}
    assert state.requiredStartLetter == 't'
    assert state.currentPlayer == 'p2'
    assert status.type == 'success'
    assert status.msg == 'Great! Next must start with "t".'
    assert sio.events('game:status')[-1] == {'type': 'success', 'msg': 'Great! Next must start with "t".'}


def test_scenario_b_structural_failure(make_game, sio):
    game = make_game()
    game.state = GameState(requiredStartLetter='t', timeLeft=15)

    status = asyncio.run(game.submit('cat'))

    assert status.msg == 'Minimum 4 letters. (-1)'
    assert game.state.scores == {'p1': -1, 'p2': 0}
    assert game.state.currentPlayer == 'p2'
    assert game.state.history == ()


def test_scenario_c_already_used(make_game):
    calls = []

    def fetch(word):
        calls.append(word)
        return 'a trial'

    game = make_game(fetch)
    game.state = GameState(requiredStartLetter='t', usedWords=frozenset({'test'}), timeLeft=15)

    status = asyncio.run(game.submit('Test'))

    assert status.msg == 'This word was already used. (-1)'
    assert game.state.scores['p1'] == -1
    assert game.state.usedWords == frozenset({'test'})
    assert calls == []


def test_wrong_start_letter_message(make_game):
    game = make_game()
    game.state = GameState(requiredStartLetter='s', timeLeft=15)
    status = asyncio.run(game.submit('tree'))
    assert status.msg == 'Word must start with "s". (-1)'


def test_scenario_d_timer_expiry(make_game, sio):
    game = make_game(turn_seconds=5, tick_interval=0.01)
    game.state = GameState(requiredStartLetter='t', timeLeft=5)

    async def scenario():
        game.timer.start(5)
        await wait_until(lambda: game.state.currentPlayer == 'p2')
        await game.close()

    asyncio.run(scenario())
    assert game.state.scores == {'p1': -1, 'p2': 0}
    assert game.state.requiredStartLetter == 't'
    assert game.state.timeLeft == 5
    assert game.state.history == ()
    assert sio.events('game:status')[-1] == {'type': 'error', 'msg': 'Player 1 ran out of time (-1).'}
    assert [t['timeLeft'] for t in sio.events('timer-sync')][:4] == [4, 3, 2, 1]


def test_scenario_e_lookup_timeout(make_game):
    release = threading.Event()
    game = make_game(_blocking_fetch(release), timeout_ms=30)

    async def scenario():
        try:
            return await game.submit('test')
        finally:
            release.set()

    status = asyncio.run(scenario())
    assert status.msg == 'Invalid word: Lookup timed out (-1)'
    assert game.state.scores == {'p1': -1, 'p2': 0}
    assert game.state.currentPlayer == 'p2'
    assert game.state.history == ()
    assert 'test' not in game.state.usedWords
    assert not game.busy


def test_lookup_failure_allows_retry(make_game):
    attempts = []

    def fetch(word):
        attempts.append(word)
        if len(attempts) == 1:
            raise LookupFailure('offline')
        return 'a trial'

    game = make_game(fetch)

    async def scenario():
        first = await game.submit('test')
        second = await game.submit('test')
        return first, second

    first, second = asyncio.run(scenario())
    assert first.msg == 'Invalid word: Lookup failed (-1)'
    assert second.type == 'success'
    assert game.state.scores == {'p1': -1, 'p2': 1}
    assert game.state.history[0].submittedBy == 'p2'


def test_not_found_message(make_game):
    def fetch(word):
        raise WordNotFound(word)

    game = make_game(fetch)
    status = asyncio.run(game.submit('qwzx'))
    assert status.msg == 'Invalid word: Not found in dictionary (-1)'


def test_busy_guard_ignores_second_submission(make_game):
    release = threading.Event()
    game = make_game(_blocking_fetch(release, 'a trial'))

    async def scenario():
        first = asyncio.create_task(game.submit('test'))
        await wait_until(lambda: game.busy)
        ignored = await game.submit('tree')
        release.set()
        return ignored, await first

    ignored, status = asyncio.run(scenario())
    assert ignored is None
    assert status.type == 'success'
    assert [e.word for e in game.state.history] == ['test']
    assert game.state.scores == {'p1': 1, 'p2': 0}


def test_busy_snapshot_is_broadcast_while_checking(make_game, sio):
    game = make_game(DictionaryService({'test': 'a trial'}))
    asyncio.run(game.submit('test'))
    busy_flags = [s['busy'] for s in sio.events('game:state')]
    assert busy_flags == [True, False]


def test_timer_expiry_cancels_pending_lookup(make_game, sio):
    release = threading.Event()
    game = make_game(_blocking_fetch(release, 'a trial'), turn_seconds=5, tick_interval=0.01)

    async def scenario():
        game.timer.start(5)
        try:
            status = await game.submit('test')
            return status, dict(game.state.scores)
        finally:
            release.set()
            await game.close()

    status, scores = asyncio.run(scenario())
    assert status is None
    assert scores['p1'] == -1
    assert game.state.history == ()
    assert 'test' not in game.state.usedWords
    expired = [s for s in sio.events('game:status') if 'Player 1 ran out of time' in s['msg']]
    assert len(expired) == 1
    assert not any(s['msg'].startswith('Invalid word') for s in sio.events('game:status'))


def test_reset_cancels_pending_lookup_without_penalty(make_game):
    release = threading.Event()
    game = make_game(_blocking_fetch(release, 'a trial'))

    async def scenario():
        task = asyncio.create_task(game.submit('test'))
        await wait_until(lambda: game.busy)
        await game.reset()
        release.set()
        result = await task
        await game.close()
        return result

    assert asyncio.run(scenario()) is None
    assert game.state.scores == {'p1': 0, 'p2': 0}
    assert game.state.currentPlayer == 'p1'
    assert game.status.msg == 'New game started.'


def test_reset_is_idempotent(make_game):
    game = make_game(DictionaryService({'test': 'a trial', 'tree': 'a plant'}), turn_seconds=20)

    async def scenario():
        await game.submit('test')
        await game.submit('tree')
        await game.submit('cat')
        await game.reset()
        first = game.state
        await game.reset()
        await game.close()
        return first

    first = asyncio.run(scenario())
    for state in (first, game.state):
        assert state.scores == {'p1': 0, 'p2': 0}
        assert state.currentPlayer == 'p1'
        assert state.usedWords == frozenset()
        assert state.history == ()
        assert state.requiredStartLetter == ''
        assert state.timeLeft == 20


def test_turns_alternate_on_every_resolution(make_game):
    game = make_game(DictionaryService({'test': 'a trial', 'tree': 'a plant'}))
    seen = [game.state.currentPlayer]

    async def scenario():
        for word in ['test', 'xx', 'tree', 'tree', '', 'echo']:
            await game.submit(word)
            seen.append(game.state.currentPlayer)

    asyncio.run(scenario())
    assert all(a != b for a, b in zip(seen, seen[1:]))


def test_reset_with_new_config(make_game):
    from shiritori.config import build_turn_config

    game = make_game()

    async def scenario():
        await game.reset(build_turn_config(30, 'Ann', 'Bo'))
        await game.close()

    asyncio.run(scenario())
    assert game.state.timeLeft == 30
    assert game.current_player_name == 'Ann'


def test_manager_creates_games_lazily(sio):
    manager = GameManager(sio, DictionaryLookup(DictionaryService({'test': 'a trial'})), tick_interval=10.0)

    async def scenario():
        game = await manager.start_game('room-9')
        assert manager.get_or_create('room-9') is game
        status = await manager.submit('room-9', 'test')
        timer = manager.get_timer_state('room-9')
        await manager.close('room-9')
        return status, timer

    status, timer = asyncio.run(scenario())
    assert status.type == 'success'
    assert timer.currentPlayer == 'p2'
    assert manager.get_timer_state('room-9') is None
    assert all(room == 'room-9' for _, _, room in sio.emitted)


def test_fetcher_crash_is_penalized_like_a_failed_lookup(make_game):
    def fetch(word):
        raise KeyError('unexpected')

    game = make_game(fetch)
    status = asyncio.run(game.submit('test'))
    assert status.msg == 'Invalid word: Lookup failed (-1)'
    assert game.state.currentPlayer == 'p2'
    assert not game.busy


def test_submit_to_unknown_game_is_ignored(sio):
    manager = GameManager(sio, DictionaryLookup(DictionaryService()), tick_interval=10.0)
    assert asyncio.run(manager.submit('missing', 'test')) is None
    assert manager.games == {}
    assert sio.emitted == []
