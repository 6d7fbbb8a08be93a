# geostats/ingest.py

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from geostats import settings
from geostats.aggregator import History, fold, statistics_rows
from geostats.database import Workbook, WorkbookStore
from geostats.geocoder import Geocoder
from geostats.models import CountryGuessRecord, GameRecord, ParsedGame, RoundRecord
from geostats.parser import GamePayloadParser
from geostats.renderer import Renderer, SheetRenderer
from geostats.report import MapModeReport, build_report, report_rows
from geostats.sheets import (
    COUNTRY_HEADERS,
    GAMES_DATE_COL,
    GAMES_HEADERS,
    GAMES_TOKEN_COL,
    ROUNDS_HEADERS,
    game_from_row,
    game_to_row,
    guess_from_row,
    guess_to_row,
    round_from_row,
    round_to_row,
)

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    token: str
    duplicate: bool
    rounds_written: int
    guesses_written: int
    workbook_location: str
    report_sheet: Optional[str] = None


def load_games(workbook: Workbook) -> List[GameRecord]:
    return [game_from_row(row) for row in workbook.get_records(settings.GAMES_SHEET)]


def load_history(workbook: Workbook) -> History:
    """Read the Games and Country Recognition tables back into records."""
    games = load_games(workbook)
    guesses = [guess_from_row(row) for row in workbook.get_records(settings.COUNTRY_SHEET)]
    return History(games=games, guesses=guesses)


def load_rounds(workbook: Workbook) -> List[RoundRecord]:
    return [round_from_row(row) for row in workbook.get_records(settings.ROUNDS_SHEET)]


class GameIngestor:
    """Write one game into a user's workbook and refresh the derived tables.

    Steps run in order and are not transactional: if one fails, the tables
    already written keep their new rows.
    """

    def __init__(
        self,
        store: WorkbookStore,
        geocoder: Geocoder,
        renderer: Optional[Renderer] = None,
        parser: Optional[GamePayloadParser] = None,
    ):
        self.store = store
        self.geocoder = geocoder
        self.renderer = renderer or SheetRenderer()
        self.parser = parser or GamePayloadParser()

    def ingest(self, user_id: Any, game_data: Any) -> IngestResult:
        parsed = self.parser.parse(game_data)
        game = parsed.game

        with self.store.get_or_create_workbook(user_id) as workbook:
            location = workbook.db_path
            if not self.save_game(workbook, game):
                logger.info("Game %s already stored for user %s; skipping", game.token, user_id)
                return IngestResult(
                    token=game.token,
                    duplicate=True,
                    rounds_written=0,
                    guesses_written=0,
                    workbook_location=location,
                )

            rounds_written = self.save_rounds(workbook, parsed)
            guesses_written = self.save_country_guesses(workbook, parsed)
            self.update_statistics(workbook)
            report = self.update_report(workbook, game.map_name, game.mode)

        logger.info(
            "Saved game %s (%s / %s): %s rounds, %s country guesses",
            game.token, game.map_name, game.mode, rounds_written, guesses_written,
        )
        return IngestResult(
            token=game.token,
            duplicate=False,
            rounds_written=rounds_written,
            guesses_written=guesses_written,
            workbook_location=location,
            report_sheet=report.sheet_name,
        )

    # --- Flat tables ---

    def save_game(self, workbook: Workbook, game: GameRecord) -> bool:
        """Append the game row unless its token is already stored. Returns True if written."""
        workbook.get_or_create_sheet(settings.GAMES_SHEET, GAMES_HEADERS)
        existing_tokens = workbook.column_values(settings.GAMES_SHEET, GAMES_TOKEN_COL)
        if game.token in existing_tokens:
            return False

        workbook.append_row(settings.GAMES_SHEET, game_to_row(game))
        workbook.sort_rows(settings.GAMES_SHEET, GAMES_DATE_COL, descending=True)
        logger.info(
            "Game %s appended to %s (%s / %s)", game.token, settings.GAMES_SHEET, game.map_name, game.mode,
        )
        return True

    def save_rounds(self, workbook: Workbook, parsed: ParsedGame) -> int:
        workbook.get_or_create_sheet(settings.ROUNDS_SHEET, ROUNDS_HEADERS)
        game = parsed.game
        rows = [
            round_to_row(RoundRecord(
                game_token=game.token,
                date=game.date,
                map_name=game.map_name,
                mode=game.mode,
                round_number=r.round_number,
                score=r.score,
                distance_meters=r.distance_meters,
                actual_country=r.country,
                actual_lat=r.lat,
                actual_lng=r.lng,
            ))
            for r in parsed.rounds
        ]
        workbook.append_rows(settings.ROUNDS_SHEET, rows)
        logger.info("Appended %s rounds for game %s", len(rows), game.token)
        return len(rows)

    def save_country_guesses(self, workbook: Workbook, parsed: ParsedGame) -> int:
        """Geocode each guess and record whether it landed in the right country."""
        workbook.get_or_create_sheet(settings.COUNTRY_SHEET, COUNTRY_HEADERS)
        game = parsed.game
        rows = []
        for r in parsed.rounds:
            if not r.has_guess:
                continue
            guessed = (self.geocoder.country_code(r.guess_lat, r.guess_lng) or settings.UNKNOWN_COUNTRY).lower()
            actual = r.country or settings.UNKNOWN_COUNTRY
            record = CountryGuessRecord(
                game_token=game.token,
                date=game.date,
                map_name=game.map_name,
                mode=game.mode,
                round_number=r.round_number,
                actual_country=actual,
                guessed_country=guessed,
                is_correct=guessed == actual,
                score=r.score,
                distance_meters=r.distance_meters,
                actual_lat=r.lat,
                actual_lng=r.lng,
                guess_lat=r.guess_lat,
                guess_lng=r.guess_lng,
            )
            rows.append(guess_to_row(record))
        workbook.append_rows(settings.COUNTRY_SHEET, rows)
        unknown = sum(1 for row in rows if row[6] == settings.UNKNOWN_COUNTRY.upper())
        logger.info(
            "Appended %s country guesses for game %s (%s unresolved)", len(rows), game.token, unknown,
        )
        return len(rows)

    # --- Derived tables ---

    def update_statistics(self, workbook: Workbook) -> None:
        """Rebuild the Statistics table from the whole history."""
        history = load_history(workbook)
        stats = fold(history)
        self.renderer.write(workbook, settings.STATS_SHEET, statistics_rows(stats))
        logger.info("Statistics rebuilt: %s map/mode keys from %s games", len(stats), len(history.games))

    def update_report(self, workbook: Workbook, map_name: str, mode: str) -> MapModeReport:
        """Rebuild the report for one map/mode, replacing any previous one."""
        games = load_games(workbook)
        report = build_report(map_name, mode, games, load_rounds(workbook))
        self.renderer.write(workbook, report.sheet_name, report_rows(report))
        logger.info("Report '%s' rebuilt from %s games", report.sheet_name, report.games)
        return report
