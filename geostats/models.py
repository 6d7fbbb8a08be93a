# geostats/models.py

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional

from geostats.settings import MAX_SCORE


class MapModeKey(NamedTuple):
    """Composite grouping key; compared structurally, never joined into a string."""

    map_name: str
    mode: str


@dataclass(frozen=True)
class RoundInput:
    """One round as received from the client, before any table write."""

    round_number: int
    score: int
    distance_meters: float
    country: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    guess_lat: Optional[float] = None
    guess_lng: Optional[float] = None

    @property
    def has_guess(self) -> bool:
        # Zero coordinates count as missing, like the client sends them.
        return bool(self.guess_lat) and bool(self.guess_lng)


@dataclass(frozen=True)
class GameRecord:
    token: str
    date: Optional[datetime]
    map_name: str
    mode: str
    score: int
    distance_meters: float
    time_limit: int = 0
    round_count: int = 0
    map_id: Optional[str] = None

    @property
    def is_perfect(self) -> bool:
        return self.score == MAX_SCORE

    @property
    def distance_km(self) -> float:
        return round_half_up(self.distance_meters / 1000, 2)

    @property
    def key(self) -> MapModeKey:
        return MapModeKey(self.map_name, self.mode)


@dataclass(frozen=True)
class RoundRecord:
    game_token: str
    date: Optional[datetime]
    map_name: str
    mode: str
    round_number: int
    score: int
    distance_meters: float
    actual_country: str
    actual_lat: Optional[float] = None
    actual_lng: Optional[float] = None

    @property
    def distance_km(self) -> float:
        return round_half_up(self.distance_meters / 1000, 2)

    @property
    def key(self) -> MapModeKey:
        return MapModeKey(self.map_name, self.mode)


@dataclass(frozen=True)
class CountryGuessRecord:
    game_token: str
    date: Optional[datetime]
    map_name: str
    mode: str
    round_number: int
    actual_country: str
    guessed_country: str
    is_correct: bool
    score: int
    distance_meters: float
    actual_lat: Optional[float] = None
    actual_lng: Optional[float] = None
    guess_lat: Optional[float] = None
    guess_lng: Optional[float] = None

    @property
    def distance_km(self) -> float:
        return round_half_up(self.distance_meters / 1000, 2)

    @property
    def key(self) -> MapModeKey:
        return MapModeKey(self.map_name, self.mode)


@dataclass
class ParsedGame:
    """A validated game payload: the game row plus its rounds."""

    game: GameRecord
    rounds: List[RoundInput] = field(default_factory=list)


@dataclass
class CountryStat:
    encountered: int = 0
    correct_guesses: int = 0
    total_score: int = 0
    wrong_guesses: Dict[str, int] = field(default_factory=dict)

    @property
    def accuracy_pct(self) -> float:
        if self.encountered == 0:
            return 0.0
        return self.correct_guesses / self.encountered * 100


@dataclass
class MapModeStat:
    map_name: str
    mode: str
    games: int = 0
    total_score: int = 0
    best_score: int = 0
    worst_score: int = MAX_SCORE
    total_distance_km: float = 0.0
    perfect_games: int = 0
    countries: Dict[str, CountryStat] = field(default_factory=dict)

    @property
    def key(self) -> MapModeKey:
        return MapModeKey(self.map_name, self.mode)

    @property
    def total_countries(self) -> int:
        return len(self.countries)

    @property
    def avg_score(self) -> int:
        return int(round_half_up(self.total_score / self.games)) if self.games else 0

    @property
    def avg_distance_km(self) -> float:
        return round_half_up(self.total_distance_km / self.games, 2) if self.games else 0.0

    @property
    def perfect_rate_pct(self) -> float:
        return round_half_up(self.perfect_games / self.games * 100, 2) if self.games else 0.0

    @property
    def reported_worst_score(self) -> int:
        # 25000 is only a starting sentinel for min(); it means nothing without games.
        return self.worst_score if self.games else 0


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a spreadsheet does: halves go up, not to even."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor
