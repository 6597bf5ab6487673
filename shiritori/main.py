from __future__ import annotations
import logging
from typing import Dict, Optional

import socketio
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .config import build_turn_config, settings
from .dictionary import DictionaryLookup
from .errors import ConfigError
from .managers.game import GameManager
from .schemas import ResetPayload, SubmitPayload

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

# Socket.IO server (ASGI)
sio = socketio.AsyncServer(async_mode='asgi', cors_allowed_origins=settings.CORS_ORIGINS)
app = FastAPI(title="Shiritori Server", version="0.1.0")

# Mount Socket.IO ASGI application
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)

# CORS for REST
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

lookup = DictionaryLookup()
games = GameManager(sio, lookup)


def _config_from(payload: ResetPayload, game_id: str):
    base = games.games[game_id].config if game_id in games.games else None
    return build_turn_config(payload.turnSeconds, payload.player1Name, payload.player2Name, base=base)


# REST Endpoints
@app.get('/config')
async def get_config() -> Dict[str, int]:
    return {
        'turnSeconds': settings.TURN_SECONDS,
        'minTurnSeconds': settings.MIN_TURN_SECONDS,
        'maxTurnSeconds': settings.MAX_TURN_SECONDS,
        'lookupTimeoutMs': settings.LOOKUP_TIMEOUT_MS,
    }

# Dictionary validation REST endpoint
@app.get('/dict/validate')
async def validate_word(word: str):
    result = await lookup.lookup(word)
    return { 'word': result.word, 'valid': result.ok, 'definition': result.definition, 'error': result.error }

@app.get('/games/{game_id}')
async def get_game(game_id: str):
    return games.snapshot(game_id).model_dump(mode='json')

@app.post('/games/{game_id}/reset')
async def reset_game(game_id: str, payload: Optional[ResetPayload] = None):
    # Games only live while a client is joined over Socket.IO
    if games.get(game_id) is None:
        raise HTTPException(status_code=404, detail='Game not found')
    try:
        config = _config_from(payload or ResetPayload(), game_id)
    except ConfigError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    game = await games.reset_game(game_id, config)
    return game.snapshot().model_dump(mode='json')

# Socket.IO Events
@sio.event
async def connect(sid, environ, auth=None):
    await sio.save_session(sid, {})
    await sio.emit('pong', to=sid)

@sio.event
async def disconnect(sid):
    logger.debug('Client %s disconnected', sid)
    game_id = await _game_id_of(sid)
    if game_id:
        await games.leave(game_id, sid)

@sio.on('ping')
async def on_ping(sid):
    await sio.emit('pong', to=sid)

async def _game_id_of(sid) -> Optional[str]:
    sess = await sio.get_session(sid)
    return sess.get('game_id') if sess else None

@sio.on('join-game')
async def join_game(sid, game_id: str):
    sess = await sio.get_session(sid) or {}
    previous = sess.get('game_id')
    if previous and previous != game_id:
        await sio.leave_room(sid, previous)
        await games.leave(previous, sid)
    await sio.enter_room(sid, game_id)
    await sio.save_session(sid, { **sess, 'game_id': game_id })
    game = await games.join(game_id, sid)
    # Send immediate state to the joining client
    await sio.emit('game:state', game.snapshot().model_dump(mode='json'), to=sid)
    await sio.emit('timer-sync', game.timer_state().model_dump(), to=sid)

@sio.on('game:submit')
async def submit_word(sid, payload):
    game_id = await _game_id_of(sid)
    if not game_id:
        return
    try:
        data = SubmitPayload.model_validate(payload if isinstance(payload, dict) else {'word': payload})
    except ValidationError:
        data = SubmitPayload()
    await games.submit(game_id, data.word)

@sio.on('game:reset')
async def reset_from_client(sid, payload=None):
    game_id = await _game_id_of(sid)
    if not game_id:
        return
    try:
        config = _config_from(ResetPayload.model_validate(payload or {}), game_id)
    except (ConfigError, ValidationError) as exc:
        await sio.emit('game:error', { 'error': str(exc) }, to=sid)
        return
    await games.reset_game(game_id, config)

# Export ASGI app for uvicorn
application = asgi_app

# For local running: uvicorn shiritori.main:application --reload --host 0.0.0.0 --port 8000
