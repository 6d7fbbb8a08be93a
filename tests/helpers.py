# tests/helpers.py

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from geostats.models import CountryGuessRecord, GameRecord, RoundRecord

DEFAULT_GUESSES = {
    (45.0, 2.0): "fr",
    (52.0, 10.0): "de",
}


class FakeGeocoder:
    """Deterministic geocoder: looks coordinates up in a dict, else "unknown"."""

    def __init__(self, mapping: Optional[Dict[Tuple[float, float], str]] = None):
        self.mapping = dict(DEFAULT_GUESSES if mapping is None else mapping)
        self.calls: List[Tuple[float, float]] = []

    def country_code(self, lat: float, lng: float) -> str:
        self.calls.append((lat, lng))
        return self.mapping.get((lat, lng), "unknown")


def make_round(round_number: int, country: str, guess: Optional[Tuple[float, float]],
               score: int = 4970, distance: float = 2500,
               lat: float = 46.2276, lng: float = 2.2137) -> dict:
    data = {
        "roundNumber": round_number,
        "score": score,
        "distance": distance,
        "country": country,
        "lat": lat,
        "lng": lng,
    }
    if guess:
        data["guessLat"], data["guessLng"] = guess
    return data


def make_game_data(token: str = "test123",
                   score: int = 24850,
                   distance: float = 12500,
                   map_name: str = "World",
                   map_id: Optional[str] = "world",
                   date: str = "2024-05-01T12:00:00Z",
                   restrictions: Tuple[bool, bool, bool] = (False, False, False),
                   rounds: Optional[List[dict]] = None) -> dict:
    """A gameData payload shaped like the browser client sends it."""
    if rounds is None:
        rounds = [
            make_round(1, "fr", (45.0, 2.0), score=4970, distance=2500),
            make_round(2, "de", (52.0, 10.0), score=4980, distance=1500,
                       lat=51.1657, lng=10.4515),
        ]
    moving, zooming, rotating = restrictions
    return {
        "token": token,
        "date": date,
        "score": score,
        "distance": distance,
        "mapName": map_name,
        "mapId": map_id,
        "timeLimit": 0,
        "rounds": rounds,
        "restrictions": {
            "forbidMoving": moving,
            "forbidZooming": zooming,
            "forbidRotating": rotating,
        },
    }


def make_game(map_name: str, mode: str, score: int,
              token: Optional[str] = None, distance_meters: float = 1000.0) -> GameRecord:
    return GameRecord(
        token=token or f"{map_name}-{mode}-{score}",
        date=datetime(2024, 5, 1, tzinfo=timezone.utc),
        map_name=map_name,
        mode=mode,
        score=score,
        distance_meters=distance_meters,
        round_count=5,
    )


def make_guess(map_name: str, mode: str, actual: str, guessed: str,
               score: int = 4000, round_number: int = 1) -> CountryGuessRecord:
    return CountryGuessRecord(
        game_token="g",
        date=None,
        map_name=map_name,
        mode=mode,
        round_number=round_number,
        actual_country=actual,
        guessed_country=guessed,
        is_correct=actual == guessed,
        score=score,
        distance_meters=0.0,
    )


def make_round_record(map_name: str, mode: str, country: str, round_number: int = 1) -> RoundRecord:
    return RoundRecord(
        game_token="g",
        date=None,
        map_name=map_name,
        mode=mode,
        round_number=round_number,
        score=3000,
        distance_meters=100.0,
        actual_country=country,
    )
