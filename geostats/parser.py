# geostats/parser.py

from datetime import datetime, timezone
from typing import Any, Optional

from geostats.errors import ValidationError
from geostats.game_mode import ModeRestrictions, classify_mode
from geostats.models import GameRecord, ParsedGame, RoundInput
from geostats.settings import MAX_SCORE, UNKNOWN_COUNTRY, UNKNOWN_MAP


class GamePayloadParser:
    """
    Validate and normalize a `gameData` object posted by the client.

    Expected shape:
        {token, date, score, distance, mapName, mapId?, timeLimit,
         rounds: [{roundNumber, score, distance, country, lat, lng,
                   guessLat, guessLng}],
         restrictions: {forbidMoving, forbidZooming, forbidRotating}}
    """

    def parse(self, game_data: Any) -> ParsedGame:
        """
        Parse a raw payload into a GameRecord and its rounds.

        Raises:
            ValidationError: If a required field is missing or malformed
        """
        if not isinstance(game_data, dict):
            raise ValidationError("gameData must be an object")

        token = str(game_data.get('token') or '').strip()
        if not token:
            raise ValidationError('Missing "token" in gameData')

        restrictions_raw = game_data.get('restrictions')
        if not isinstance(restrictions_raw, dict):
            raise ValidationError('Missing "restrictions" in gameData')
        mode = classify_mode(ModeRestrictions.from_payload(restrictions_raw))

        rounds_raw = game_data.get('rounds')
        if not isinstance(rounds_raw, list):
            raise ValidationError('Missing "rounds" list in gameData')

        score = self._score(game_data.get('score'), 'score')
        distance = self._distance(game_data.get('distance'), 'distance')
        map_id = game_data.get('mapId')

        game = GameRecord(
            token=token,
            date=self._parse_date(game_data.get('date')),
            map_name=str(game_data.get('mapName') or UNKNOWN_MAP),
            mode=mode,
            score=score,
            distance_meters=distance,
            time_limit=self._to_int(game_data.get('timeLimit'), 'timeLimit'),
            round_count=len(rounds_raw),
            map_id=str(map_id) if map_id else None,
        )
        rounds = [self._parse_round(raw, index) for index, raw in enumerate(rounds_raw, start=1)]
        return ParsedGame(game=game, rounds=rounds)

    def _parse_round(self, raw: Any, index: int) -> RoundInput:
        if not isinstance(raw, dict):
            raise ValidationError(f"Round {index} must be an object")

        round_number = self._to_int(raw.get('roundNumber', index), f'rounds[{index}].roundNumber')
        if round_number < 1:
            raise ValidationError(f"rounds[{index}].roundNumber must be >= 1, got {round_number}")

        country = str(raw.get('country') or UNKNOWN_COUNTRY).strip().lower()

        return RoundInput(
            round_number=round_number,
            score=self._to_int(raw.get('score'), f'rounds[{index}].score'),
            distance_meters=self._distance(raw.get('distance'), f'rounds[{index}].distance'),
            country=country or UNKNOWN_COUNTRY,
            lat=self._coordinate(raw.get('lat')),
            lng=self._coordinate(raw.get('lng')),
            guess_lat=self._coordinate(raw.get('guessLat')),
            guess_lng=self._coordinate(raw.get('guessLng')),
        )

    @staticmethod
    def _to_int(value: Any, field_name: str) -> int:
        if value is None or value == '':
            return 0
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field_name} must be an integer, got {value!r}")

    def _score(self, value: Any, field_name: str) -> int:
        score = self._to_int(value, field_name)
        if not 0 <= score <= MAX_SCORE:
            raise ValidationError(f"{field_name} must be between 0 and {MAX_SCORE}, got {score}")
        return score

    @staticmethod
    def _distance(value: Any, field_name: str) -> float:
        if value is None or value == '':
            return 0.0
        try:
            distance = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field_name} must be a number, got {value!r}")
        if distance < 0:
            raise ValidationError(f"{field_name} must be non-negative, got {distance}")
        return distance

    @staticmethod
    def _coordinate(value: Any) -> Optional[float]:
        if value is None or value == '':
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _parse_date(value: Any) -> datetime:
        if not value:
            return datetime.now(timezone.utc)
        if isinstance(value, datetime):
            return value
        try:
            return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError(f"date must be an ISO timestamp, got {value!r}")

