from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, FrozenSet, Literal, Optional, Tuple

Player = Literal['p1', 'p2']
PLAYERS: Tuple[Player, Player] = ('p1', 'p2')

StatusType = Literal['info', 'success', 'error']


def other(player: Player) -> Player:
    return 'p2' if player == 'p1' else 'p1'


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    word: str
    submittedBy: Player
    definition: Optional[str] = None


class TurnConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    turnSeconds: int = Field(default=15, gt=0)
    player1Name: str = 'Player 1'
    player2Name: str = 'Player 2'

    def name_of(self, player: Player) -> str:
        return self.player1Name if player == 'p1' else self.player2Name


class GameState(BaseModel):
    # Replaced wholesale on every transition, never mutated in place
    model_config = ConfigDict(frozen=True)

    scores: Dict[Player, int] = Field(default_factory=lambda: {'p1': 0, 'p2': 0})
    currentPlayer: Player = 'p1'
    requiredStartLetter: str = ''
    usedWords: FrozenSet[str] = frozenset()
    history: Tuple[HistoryEntry, ...] = ()
    timeLeft: int = Field(default=0, ge=0)


class StatusMessage(BaseModel):
    type: StatusType
    msg: str


class LookupResult(BaseModel):
    word: str
    definition: Optional[str] = None
    # None on success, otherwise a LookupErrorKind value
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TimerState(BaseModel):
    timeLeft: int
    currentPlayer: Player
    isRunning: bool = True


class GameSnapshot(BaseModel):
    id: str
    state: GameState
    config: TurnConfig
    busy: bool = False
    status: Optional[StatusMessage] = None


class SubmitPayload(BaseModel):
    word: str = ''


class ResetPayload(BaseModel):
    turnSeconds: Optional[int] = None
    player1Name: Optional[str] = None
    player2Name: Optional[str] = None
