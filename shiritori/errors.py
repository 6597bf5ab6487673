from __future__ import annotations
from enum import Enum


class StructuralError(str, Enum):
    EMPTY_INPUT = 'EmptyInput'
    INVALID_CHARACTERS = 'InvalidCharacters'
    TOO_SHORT = 'TooShort'
    WRONG_START_LETTER = 'WrongStartLetter'
    ALREADY_USED = 'AlreadyUsed'

    def message(self, required_letter: str = '') -> str:
        if self is StructuralError.WRONG_START_LETTER:
            return f'Word must start with "{required_letter}".'
        return _STRUCTURAL_MESSAGES[self]


_STRUCTURAL_MESSAGES = {
    StructuralError.EMPTY_INPUT: 'Please enter a word.',
    StructuralError.INVALID_CHARACTERS: 'Letters only (A-Z).',
    StructuralError.TOO_SHORT: 'Minimum 4 letters.',
    StructuralError.ALREADY_USED: 'This word was already used.',
}


class LookupErrorKind(str, Enum):
    NOT_FOUND = 'NotFound'
    DEFINITION_UNAVAILABLE = 'DefinitionUnavailable'
    LOOKUP_FAILED = 'LookupFailed'
    TIMED_OUT = 'TimedOut'
    CANCELLED = 'Cancelled'

    @property
    def message(self) -> str:
        return _LOOKUP_MESSAGES[self]


_LOOKUP_MESSAGES = {
    LookupErrorKind.NOT_FOUND: 'Not found in dictionary',
    LookupErrorKind.DEFINITION_UNAVAILABLE: 'Definition unavailable',
    LookupErrorKind.LOOKUP_FAILED: 'Lookup failed',
    LookupErrorKind.TIMED_OUT: 'Lookup timed out',
    LookupErrorKind.CANCELLED: 'Request cancelled',
}


class LookupFailure(Exception):
    """Raised by dictionary fetchers; the lookup adapter maps it to a result kind."""

    kind = LookupErrorKind.LOOKUP_FAILED


class WordNotFound(LookupFailure):
    kind = LookupErrorKind.NOT_FOUND


class DefinitionUnavailable(LookupFailure):
    kind = LookupErrorKind.DEFINITION_UNAVAILABLE


class ConfigError(ValueError):
    pass
