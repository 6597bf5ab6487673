from __future__ import annotations
import re
from typing import AbstractSet, Optional

from .errors import StructuralError
from .schemas import GameState, HistoryEntry, TurnConfig, other

MIN_WORD_LENGTH = 4

_LETTERS = re.compile(r'[a-zA-Z]+')
_NON_LETTERS = re.compile(r'[^a-z]')


def normalize_word(raw: str) -> str:
    return (raw or '').strip().lower()


def first_letter(word: str) -> str:
    letters = _NON_LETTERS.sub('', (word or '').lower())
    return letters[:1]


def last_letter(word: str) -> str:
    letters = _NON_LETTERS.sub('', (word or '').lower())
    return letters[-1:]


def validate_structure(word: str, required_start_letter: str, used_words: AbstractSet[str]) -> Optional[StructuralError]:
    """Return the first structural rule ``word`` breaks, or None if it passes.

    Order matters: emptiness, letters only, minimum length, start letter, reuse.
    """
    word = (word or '').strip()
    if not word:
        return StructuralError.EMPTY_INPUT
    if not _LETTERS.fullmatch(word):
        return StructuralError.INVALID_CHARACTERS
    if len(word) < MIN_WORD_LENGTH:
        return StructuralError.TOO_SHORT
    if required_start_letter and first_letter(word) != required_start_letter.lower():
        return StructuralError.WRONG_START_LETTER
    if word.lower() in used_words:
        return StructuralError.ALREADY_USED
    return None


# State transitions. Each takes the current GameState and returns a new one.

def new_game(config: TurnConfig) -> GameState:
    return GameState(timeLeft=config.turnSeconds)


def _switch(state: GameState, scores: dict, turn_seconds: int, **changes) -> GameState:
    return state.model_copy(update={
        'scores': scores,
        'currentPlayer': other(state.currentPlayer),
        'timeLeft': turn_seconds,
        **changes,
    })


def accept_word(state: GameState, word: str, definition: Optional[str], turn_seconds: int) -> GameState:
    word = normalize_word(word)
    player = state.currentPlayer
    scores = {**state.scores, player: state.scores[player] + 1}
    entry = HistoryEntry(word=word, submittedBy=player, definition=definition)
    return _switch(
        state,
        scores,
        turn_seconds,
        history=state.history + (entry,),
        usedWords=state.usedWords | {word},
        requiredStartLetter=last_letter(word),
    )


def penalize(state: GameState, turn_seconds: int) -> GameState:
    """-1 to the current player and hand the turn over. Letter, history and used words stay."""
    player = state.currentPlayer
    scores = {**state.scores, player: state.scores[player] - 1}
    return _switch(state, scores, turn_seconds)


def with_time_left(state: GameState, seconds: int) -> GameState:
    return state.model_copy(update={'timeLeft': max(0, seconds)})
