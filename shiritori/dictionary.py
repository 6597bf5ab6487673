from __future__ import annotations
import asyncio
import logging
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

import requests

from .config import settings
from .errors import DefinitionUnavailable, LookupErrorKind, LookupFailure, WordNotFound
from .game_logic import normalize_word
from .schemas import LookupResult

logger = logging.getLogger(__name__)

# A fetcher takes a lowercased word and returns a short definition, raising
# LookupFailure (or a subclass) when the word cannot be confirmed.
Fetcher = Callable[[str], str]

# Small offline word list for development and tests.
# Production play goes through FreeDictionaryClient.
DEFAULT_WORDS: Dict[str, str] = {
    'test': 'a procedure intended to establish quality or performance',
    'tiger': 'a large wild cat with a striped coat',
    'ring': 'a small circular band worn on a finger',
    'game': 'a form of play or sport with rules',
    'echo': 'a sound caused by the reflection of sound waves',
    'open': 'allowing access, not closed',
    'nest': 'a structure built by a bird to lay eggs in',
    'tree': 'a woody perennial plant with a trunk',
    'eagle': 'a large bird of prey',
    'earth': 'the planet on which we live',
    'house': 'a building for people to live in',
    'word': 'a single unit of language',
    'door': 'a hinged barrier at the entrance of a room',
    'rhythm': 'a strong regular repeated pattern of sound',
    'moon': 'the natural satellite of the earth',
    'night': 'the period of darkness between sunset and sunrise',
    'table': 'a piece of furniture with a flat top',
    'puzzle': 'a game or problem designed to test ingenuity',
    'zebra': 'an African wild horse with black and white stripes',
    'apple': 'the round fruit of a tree of the rose family',
}


class DictionaryService:
    def __init__(self, words: Optional[Dict[str, str]] = None):
        # Store lowercase words
        self._words: Dict[str, str] = {w.lower(): d for w, d in (words if words is not None else DEFAULT_WORDS).items()}

    def is_valid(self, word: str) -> bool:
        if not word:
            return False
        return word.lower() in self._words

    def definition(self, word: str) -> Optional[str]:
        return self._words.get((word or '').lower()) or None

    def __call__(self, word: str) -> str:
        if not self.is_valid(word):
            raise WordNotFound(word)
        definition = self.definition(word)
        if not definition:
            raise DefinitionUnavailable(word)
        return definition


def extract_definition(data: Any) -> Optional[str]:
    """First short definition in a Free Dictionary API response, if any."""
    try:
        definition = data[0]['meanings'][0]['definitions'][0]['definition']
    except (LookupError, TypeError):
        return None
    if isinstance(definition, str) and definition.strip():
        return definition.strip()
    return None


class FreeDictionaryClient:
    """Blocking client for https://dictionaryapi.dev; run it off the event loop."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.DICTIONARY_API_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SEC

    def __call__(self, word: str) -> str:
        url = f'{self.base_url}/{quote(word, safe="")}'
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning('Dictionary request for %r failed: %s', word, exc)
            raise LookupFailure(str(exc)) from exc
        if not response.ok:
            raise WordNotFound(word)
        try:
            data = response.json()
        except ValueError as exc:
            logger.warning('Dictionary returned invalid JSON for %r', word)
            raise LookupFailure('invalid response') from exc
        definition = extract_definition(data)
        if definition is None:
            raise DefinitionUnavailable(word)
        return definition


class CancelToken:
    """Cancellation handle for one lookup. Once cancelled it stays cancelled."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self):
        await self._event.wait()


class DictionaryLookup:
    def __init__(self, fetch: Optional[Fetcher] = None, timeout_ms: Optional[int] = None):
        self._fetch: Fetcher = fetch or (DictionaryService() if settings.OFFLINE_DICTIONARY else FreeDictionaryClient())
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.LOOKUP_TIMEOUT_MS

    async def lookup(self, word: str, token: Optional[CancelToken] = None, timeout_ms: Optional[int] = None) -> LookupResult:
        word = normalize_word(word)
        token = token or CancelToken()
        timeout = (timeout_ms if timeout_ms is not None else self.timeout_ms) / 1000
        if token.cancelled:
            return LookupResult(word=word, error=LookupErrorKind.CANCELLED.value)

        logger.debug('Looking up %r (timeout %.1fs)', word, timeout)
        fetch_task = asyncio.create_task(asyncio.to_thread(self._fetch, word))
        cancel_task = asyncio.create_task(token.wait())
        try:
            done, _ = await asyncio.wait({fetch_task, cancel_task}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
            if not fetch_task.done():
                # The worker thread finishes on its own socket timeout; its result is dropped
                fetch_task.cancel()

        if token.cancelled:
            if fetch_task.done() and not fetch_task.cancelled():
                fetch_task.exception()  # settled but abandoned
            return LookupResult(word=word, error=LookupErrorKind.CANCELLED.value)
        if fetch_task not in done:
            logger.info('Lookup for %r timed out after %.1fs', word, timeout)
            return LookupResult(word=word, error=LookupErrorKind.TIMED_OUT.value)
        try:
            definition = fetch_task.result()
        except LookupFailure as exc:
            return LookupResult(word=word, error=exc.kind.value)
        except Exception:
            logger.exception('Dictionary fetcher crashed on %r', word)
            return LookupResult(word=word, error=LookupErrorKind.LOOKUP_FAILED.value)
        return LookupResult(word=word, definition=definition)
