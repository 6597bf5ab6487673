from __future__ import annotations
import logging
from typing import Dict, Optional, Set

from ..config import build_turn_config
from ..dictionary import CancelToken, DictionaryLookup
from ..errors import LookupErrorKind
from ..game_logic import accept_word, new_game, normalize_word, penalize, validate_structure, with_time_left
from ..schemas import GameSnapshot, StatusMessage, TimerState, TurnConfig
from .timer import TICK_INTERVAL, TurnTimer

logger = logging.getLogger(__name__)

PENALTY_SUFFIX = ' (-1)'


class ShiritoriGame:
    """Owns one game's state and applies every transition to it.

    Submissions and timer expiries both end in ``_switch_turn``, which restarts
    the countdown for the next player and broadcasts the new snapshot.
    """

    def __init__(self, game_id: str, sio, lookup: DictionaryLookup, config: Optional[TurnConfig] = None,
                 tick_interval: float = TICK_INTERVAL):
        self.id = game_id
        self.sio = sio
        self.lookup = lookup
        self.config: TurnConfig = config or build_turn_config()
        self.state = new_game(self.config)
        self.status: Optional[StatusMessage] = None
        self.started = False
        self._pending: Optional[CancelToken] = None
        self.timer = TurnTimer(self._on_tick, self._on_expire, interval=tick_interval)

    @property
    def busy(self) -> bool:
        return self._pending is not None

    @property
    def current_player_name(self) -> str:
        return self.config.name_of(self.state.currentPlayer)

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(id=self.id, state=self.state, config=self.config, busy=self.busy, status=self.status)

    def timer_state(self) -> TimerState:
        return TimerState(timeLeft=self.state.timeLeft, currentPlayer=self.state.currentPlayer,
                          isRunning=self.timer.running)

    async def start(self):
        if not self.started:
            await self.reset()

    async def reset(self, config: Optional[TurnConfig] = None):
        self._cancel_pending()
        if config is not None:
            self.config = config
        self.state = new_game(self.config)
        self.status = StatusMessage(type='info', msg='New game started.')
        self.started = True
        self.timer.start(self.config.turnSeconds)
        logger.info('Game %s reset (%ss per turn)', self.id, self.config.turnSeconds)
        await self._broadcast()

    async def submit(self, raw: str) -> Optional[StatusMessage]:
        """Resolve one submission. Returns the resulting status, or None if nothing changed."""
        if self.busy:
            logger.debug('Game %s: submission ignored, lookup pending', self.id)
            return None

        word = normalize_word(raw)
        error = validate_structure(word, self.state.requiredStartLetter, self.state.usedWords)
        if error is not None:
            logger.info('Game %s: %s rejected %r (%s)', self.id, self.state.currentPlayer, word, error.value)
            return await self._penalize(error.message(self.state.requiredStartLetter) + PENALTY_SUFFIX)

        token = CancelToken()
        self._pending = token
        await self._emit_state()
        try:
            result = await self.lookup.lookup(word, token)
        finally:
            if self._pending is token:
                self._pending = None

        # Superseded by a timeout or a reset while checking
        if token.cancelled or result.error == LookupErrorKind.CANCELLED.value:
            return None

        if not result.ok:
            reason = LookupErrorKind(result.error).message
            logger.info('Game %s: lookup for %r failed (%s)', self.id, word, result.error)
            return await self._penalize(f'Invalid word: {reason}{PENALTY_SUFFIX}')

        logger.info('Game %s: %s played %r', self.id, self.state.currentPlayer, word)
        self.state = accept_word(self.state, word, result.definition, self.config.turnSeconds)
        status = StatusMessage(type='success', msg=f'Great! Next must start with "{self.state.requiredStartLetter}".')
        return await self._switch_turn(status)

    async def close(self):
        self._cancel_pending()
        self.timer.stop()

    def _cancel_pending(self):
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    async def _penalize(self, msg: str) -> StatusMessage:
        self.state = penalize(self.state, self.config.turnSeconds)
        return await self._switch_turn(StatusMessage(type='error', msg=msg))

    async def _switch_turn(self, status: StatusMessage) -> StatusMessage:
        self.status = status
        self.timer.start(self.config.turnSeconds)
        await self._broadcast()
        return status

    async def _on_tick(self, remaining: int):
        self.state = with_time_left(self.state, remaining)
        await self.sio.emit('timer-sync', self.timer_state().model_dump(), room=self.id)

    async def _on_expire(self):
        # Expiry wins over a pending lookup
        self._cancel_pending()
        name = self.current_player_name
        logger.info('Game %s: %s ran out of time', self.id, self.state.currentPlayer)
        await self._penalize(f'{name} ran out of time{PENALTY_SUFFIX}.')

    async def _emit_state(self):
        await self.sio.emit('game:state', self.snapshot().model_dump(mode='json'), room=self.id)

    async def _broadcast(self):
        await self._emit_state()
        if self.status is not None:
            await self.sio.emit('game:status', self.status.model_dump(), room=self.id)


class GameManager:
    def __init__(self, sio, lookup: Optional[DictionaryLookup] = None, tick_interval: float = TICK_INTERVAL):
        self.sio = sio
        self.lookup = lookup or DictionaryLookup()
        self.tick_interval = tick_interval
        self.games: Dict[str, ShiritoriGame] = {}
        # connected sids per room; a room's game is closed when its last sid leaves
        self.members: Dict[str, Set[str]] = {}

    def get_or_create(self, game_id: str) -> ShiritoriGame:
        if game_id not in self.games:
            self.games[game_id] = ShiritoriGame(game_id, self.sio, self.lookup, tick_interval=self.tick_interval)
        return self.games[game_id]

    def get(self, game_id: str) -> Optional[ShiritoriGame]:
        return self.games.get(game_id)

    def snapshot(self, game_id: str) -> GameSnapshot:
        """Snapshot of a running game, or of a fresh one that is not kept."""
        game = self.games.get(game_id)
        if game is None:
            game = ShiritoriGame(game_id, self.sio, self.lookup, tick_interval=self.tick_interval)
        return game.snapshot()

    async def join(self, game_id: str, sid: str) -> ShiritoriGame:
        self.members.setdefault(game_id, set()).add(sid)
        return await self.start_game(game_id)

    async def leave(self, game_id: str, sid: str):
        members = self.members.get(game_id)
        if members is None:
            return
        members.discard(sid)
        if not members:
            del self.members[game_id]
            logger.info('Game %s closed, no players left', game_id)
            await self.close(game_id)

    async def start_game(self, game_id: str) -> ShiritoriGame:
        game = self.get_or_create(game_id)
        await game.start()
        return game

    async def reset_game(self, game_id: str, config: Optional[TurnConfig] = None) -> ShiritoriGame:
        game = self.get_or_create(game_id)
        await game.reset(config)
        return game

    async def submit(self, game_id: str, word: str) -> Optional[StatusMessage]:
        game = self.games.get(game_id)
        if game is None:
            logger.debug('Submission for unknown game %s ignored', game_id)
            return None
        return await game.submit(word)

    def get_timer_state(self, game_id: str) -> Optional[TimerState]:
        game = self.games.get(game_id)
        return game.timer_state() if game else None

    async def close(self, game_id: str):
        self.members.pop(game_id, None)
        game = self.games.pop(game_id, None)
        if game:
            await game.close()
