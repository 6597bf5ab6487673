from __future__ import annotations
import os
from typing import Optional

from .errors import ConfigError
from .schemas import TurnConfig


class Settings:
    DICTIONARY_API_URL = os.environ.get('DICTIONARY_API_URL') or 'https://api.dictionaryapi.dev/api/v2/entries/en'
    # Wall-clock limit for a single lookup, enforced by the adapter
    LOOKUP_TIMEOUT_MS = int(os.environ.get('LOOKUP_TIMEOUT_MS', '8000'))
    # Socket timeout for the worker thread's HTTP request
    HTTP_TIMEOUT_SEC = float(os.environ.get('HTTP_TIMEOUT_SEC', '10'))
    OFFLINE_DICTIONARY = os.environ.get('OFFLINE_DICTIONARY', '0') == '1'
    TURN_SECONDS = int(os.environ.get('TURN_SECONDS', '15'))
    MIN_TURN_SECONDS = int(os.environ.get('MIN_TURN_SECONDS', '5'))
    MAX_TURN_SECONDS = int(os.environ.get('MAX_TURN_SECONDS', '120'))
    PLAYER1_NAME = os.environ.get('PLAYER1_NAME') or 'Player 1'
    PLAYER2_NAME = os.environ.get('PLAYER2_NAME') or 'Player 2'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',') if o.strip()]


settings = Settings()


def build_turn_config(
    turn_seconds: Optional[int] = None,
    player1_name: Optional[str] = None,
    player2_name: Optional[str] = None,
    base: Optional[TurnConfig] = None,
) -> TurnConfig:
    """Build a validated TurnConfig, falling back to ``base`` then to settings.

    Raises ConfigError for a duration outside the configured bounds or a blank name.
    """
    seconds = turn_seconds if turn_seconds is not None else (base.turnSeconds if base else settings.TURN_SECONDS)
    if isinstance(seconds, bool) or not isinstance(seconds, int):
        raise ConfigError(f'turn duration must be an integer, got {seconds!r}')
    if not settings.MIN_TURN_SECONDS <= seconds <= settings.MAX_TURN_SECONDS:
        raise ConfigError(
            f'turn duration must be between {settings.MIN_TURN_SECONDS} and {settings.MAX_TURN_SECONDS} seconds'
        )
    names = []
    for given, fallback in (
        (player1_name, base.player1Name if base else settings.PLAYER1_NAME),
        (player2_name, base.player2Name if base else settings.PLAYER2_NAME),
    ):
        name = (given if given is not None else fallback).strip()
        if not name:
            raise ConfigError('player names must not be blank')
        names.append(name)
    return TurnConfig(turnSeconds=seconds, player1Name=names[0], player2Name=names[1])
