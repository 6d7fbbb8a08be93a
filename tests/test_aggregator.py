# tests/test_aggregator.py

import pytest

from geostats.aggregator import (
    STATS_HEADERS,
    STATS_TITLE,
    History,
    aggregate,
    easiest_country,
    fold,
    most_difficult_country,
    statistics_rows,
    summarize,
)
from geostats.models import MapModeKey, MapModeStat, round_half_up
from tests.helpers import make_game, make_guess


@pytest.fixture
def world_history():
    games = [
        make_game("World", "Moving", 25000, token="a"),
        make_game("World", "Moving", 10000, token="b"),
    ]
    guesses = [
        make_guess("World", "Moving", "fr", "fr"),
        make_guess("World", "Moving", "fr", "be"),
    ]
    return History(games=games, guesses=guesses)


class TestAggregate:
    """Test suite for the map x mode fold."""

    def test_world_example(self, world_history):
        stats = fold(world_history)
        stat = stats[MapModeKey("World", "Moving")]

        assert stat.games == 2
        assert stat.best_score == 25000
        assert stat.reported_worst_score == 10000
        assert stat.perfect_games == 1
        assert stat.perfect_rate_pct == 50.0
        assert stat.avg_score == 17500

        fr = stat.countries["fr"]
        assert fr.encountered == 2
        assert fr.correct_guesses == 1
        assert fr.accuracy_pct == 50.0
        assert fr.wrong_guesses == {"be": 1}
        assert most_difficult_country(stat) == ("fr", 50.0)
        assert easiest_country(stat) == ("fr", 50.0)

    def test_modes_are_separate_keys(self):
        games = [
            make_game("World", "Moving", 20000),
            make_game("World", "NMPZ", 15000),
        ]
        stats = aggregate(games, [])
        assert list(stats) == [MapModeKey("World", "Moving"), MapModeKey("World", "NMPZ")]
        assert all(stat.games == 1 for stat in stats.values())

    def test_keys_are_sorted(self):
        games = [
            make_game("b map", "Moving", 1),
            make_game("A map", "NMPZ", 1),
            make_game("A map", "Moving", 1),
        ]
        keys = list(aggregate(games, []))
        assert keys == sorted(keys)

    def test_guess_without_games_is_ignored(self):
        stats = aggregate([make_game("World", "Moving", 100)],
                          [make_guess("Europe", "Moving", "fr", "fr")])
        assert list(stats) == [MapModeKey("World", "Moving")]
        assert stats[MapModeKey("World", "Moving")].countries == {}

    @pytest.mark.parametrize("country", ["unknown", "UNKNOWN", ""])
    def test_unknown_countries_are_skipped(self, country):
        stats = aggregate([make_game("World", "Moving", 100)],
                          [make_guess("World", "Moving", country, "fr")])
        assert stats[MapModeKey("World", "Moving")].total_countries == 0

    def test_all_perfect_keeps_worst_score(self):
        stats = aggregate([make_game("World", "Moving", 25000)], [])
        stat = stats[MapModeKey("World", "Moving")]
        assert stat.reported_worst_score == 25000
        assert stat.perfect_rate_pct == 100.0

    def test_empty_key_reports_zero_worst(self):
        stat = MapModeStat(map_name="World", mode="Moving")
        assert stat.reported_worst_score == 0
        assert stat.avg_score == 0
        assert stat.avg_distance_km == 0.0

    def test_simple_variant_counts_encounters_only(self, world_history):
        stat = fold(world_history, detailed=False)[MapModeKey("World", "Moving")]
        fr = stat.countries["fr"]
        assert fr.encountered == 2
        assert fr.correct_guesses == 0
        assert fr.total_score == 0
        assert fr.wrong_guesses == {}

    def test_fold_is_deterministic(self, world_history):
        assert fold(world_history) == fold(world_history)

    def test_distance_is_summed_in_km(self):
        games = [
            make_game("World", "Moving", 1, token="a", distance_meters=1500),
            make_game("World", "Moving", 1, token="b", distance_meters=1000),
        ]
        stat = aggregate(games, [])[MapModeKey("World", "Moving")]
        assert stat.total_distance_km == pytest.approx(2.5)
        assert stat.avg_distance_km == 1.25
        assert summarize(stat)["total_distance_km"] == 3


class TestDifficulty:
    def _stat(self, guesses):
        stats = aggregate([make_game("World", "Moving", 1)], guesses)
        return stats[MapModeKey("World", "Moving")]

    def test_first_seen_wins_ties(self):
        stat = self._stat([
            make_guess("World", "Moving", "fr", "de"),
            make_guess("World", "Moving", "de", "fr"),
        ])
        assert most_difficult_country(stat) == ("fr", 0.0)

    def test_perfect_accuracy_is_never_most_difficult(self):
        stat = self._stat([make_guess("World", "Moving", "fr", "fr")])
        assert most_difficult_country(stat) is None
        assert easiest_country(stat) == ("fr", 100.0)

    def test_zero_accuracy_is_never_easiest(self):
        stat = self._stat([make_guess("World", "Moving", "fr", "de")])
        assert easiest_country(stat) is None
        assert most_difficult_country(stat) == ("fr", 0.0)

    def test_simple_variant_has_no_difficulty(self, world_history):
        stat = fold(world_history, detailed=False)[MapModeKey("World", "Moving")]
        summary = summarize(stat, detailed=False)
        assert summary["most_difficult_country"] is None
        assert summary["easiest_country"] is None


class TestRoundHalfUp:
    @pytest.mark.parametrize("value,digits,expected", [
        (0.5, 0, 1.0),
        (1.5, 0, 2.0),
        (2.5, 0, 3.0),
        (12.5, 0, 13.0),
        (1.005, 1, 1.0),
        (33.333, 2, 33.33),
    ])
    def test_halves_round_up(self, value, digits, expected):
        assert round_half_up(value, digits) == expected


class TestStatisticsRows:
    def test_layout(self, world_history):
        rows = statistics_rows(fold(world_history))

        assert rows[0] == [STATS_TITLE]
        assert rows[1] == []
        assert rows[2] == STATS_HEADERS
        assert rows[3][:14] == [
            "World", "Moving", 2, 17500, 25000, 10000, 1, 50.0, 2, 1.0,
            "1 countries", "FR (50%)", "FR (50%)", 1,
        ]
        assert rows[3][14:] == ["Country", "Encountered"]
        assert rows[4] == [""] * 14 + ["FR", 2]
        assert len(rows) == 5

    def test_key_without_countries(self):
        rows = statistics_rows(aggregate([make_game("World", "NMPZ", 5000)], []))
        assert rows[3] == [
            "World", "NMPZ", 1, 5000, 5000, 5000, 0, 0.0, 1, 1.0,
            "No data", "N/A", "N/A", 0,
        ]

    def test_country_block_sorted_by_encounters(self):
        guesses = [
            make_guess("World", "Moving", "de", "de"),
            make_guess("World", "Moving", "fr", "fr"),
            make_guess("World", "Moving", "fr", "fr"),
        ]
        rows = statistics_rows(aggregate([make_game("World", "Moving", 1)], guesses))
        assert [row[14:] for row in rows[4:]] == [["FR", 2], ["DE", 1]]

    def test_no_games_gives_header_only(self):
        assert statistics_rows({}) == [[STATS_TITLE], [], STATS_HEADERS]
