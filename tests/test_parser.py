# tests/test_parser.py

import pytest

from geostats.errors import ValidationError
from geostats.parser import GamePayloadParser
from tests.helpers import make_game_data, make_round


class TestGamePayloadParser:
    """Test suite for gameData validation."""

    @pytest.fixture
    def parser(self):
        return GamePayloadParser()

    def test_parse_valid_payload(self, parser):
        parsed = parser.parse(make_game_data())
        game = parsed.game

        assert game.token == "test123"
        assert game.map_name == "World"
        assert game.map_id == "world"
        assert game.mode == "Moving"
        assert game.score == 24850
        assert game.distance_meters == 12500
        assert game.distance_km == 12.5
        assert game.round_count == 2
        assert game.is_perfect is False
        assert game.date.year == 2024 and game.date.month == 5

        assert [r.round_number for r in parsed.rounds] == [1, 2]
        assert parsed.rounds[0].country == "fr"
        assert parsed.rounds[0].has_guess

    def test_perfect_game(self, parser):
        game = parser.parse(make_game_data(score=25000)).game
        assert game.is_perfect is True

    def test_mode_from_restrictions(self, parser):
        game = parser.parse(make_game_data(restrictions=(True, True, False))).game
        assert game.mode == "NMNZ"

    def test_country_is_lower_cased_and_defaults_to_unknown(self, parser):
        rounds = [make_round(1, "FR", None), make_round(2, "", None)]
        parsed = parser.parse(make_game_data(rounds=rounds))
        assert parsed.rounds[0].country == "fr"
        assert parsed.rounds[1].country == "unknown"
        assert not parsed.rounds[0].has_guess

    def test_missing_map_name(self, parser):
        game = parser.parse(make_game_data(map_name="")).game
        assert game.map_name == "Unknown Map"

    def test_missing_map_id(self, parser):
        game = parser.parse(make_game_data(map_id=None)).game
        assert game.map_id is None

    def test_missing_token_raises(self, parser):
        data = make_game_data()
        del data["token"]
        with pytest.raises(ValidationError, match="token"):
            parser.parse(data)

    def test_missing_restrictions_raises(self, parser):
        data = make_game_data()
        data["restrictions"] = None
        with pytest.raises(ValidationError, match="restrictions"):
            parser.parse(data)

    def test_missing_rounds_raises(self, parser):
        data = make_game_data()
        del data["rounds"]
        with pytest.raises(ValidationError, match="rounds"):
            parser.parse(data)

    @pytest.mark.parametrize("score", [-1, 25001, "abc"])
    def test_bad_score_raises(self, parser, score):
        with pytest.raises(ValidationError):
            parser.parse(make_game_data(score=score))

    def test_negative_distance_raises(self, parser):
        with pytest.raises(ValidationError, match="non-negative"):
            parser.parse(make_game_data(distance=-5))

    def test_bad_date_raises(self, parser):
        with pytest.raises(ValidationError, match="ISO"):
            parser.parse(make_game_data(date="yesterday"))

    def test_bad_round_number_raises(self, parser):
        rounds = [make_round(0, "fr", None)]
        with pytest.raises(ValidationError, match="roundNumber"):
            parser.parse(make_game_data(rounds=rounds))

    def test_non_object_payload_raises(self, parser):
        with pytest.raises(ValidationError):
            parser.parse(["not", "a", "dict"])
