import itertools
from collections import Counter
from datetime import datetime, timezone

import pytest
import psycopg
from psycopg import errors

from scramble import db
from scramble.models import Player, Score, Team, Tournament
from scramble.seed import default_course_pars

RLS_MESSAGE = 'new row violates row-level security policy for table "scores"'


class FakeStore:
    """In-memory stand-in for the scramble.db coroutines."""

    rls_message = RLS_MESSAGE

    def __init__(self):
        self.tournaments: dict[str, Tournament] = {}
        self.teams: dict[str, Team] = {}
        self.players: dict[str, Player] = {}
        self.rosters: dict[str, list[str]] = {}
        self.scores: dict[tuple, Score] = {}
        self.deny_mulligan_writes = False
        self.deny_all_writes = False
        self.fail_reads = False
        self.write_calls = 0
        self._ids = itertools.count(1)

    # helpers for arranging test data

    def add_tournament(self, tournament_type, default_mulligans=2, course_pars=None, name=None):
        self.tournaments[tournament_type] = Tournament(
            type=tournament_type,
            name=name or tournament_type,
            default_mulligans=default_mulligans,
            course_pars=default_course_pars() if course_pars is None else course_pars,
        )

    def add_team(self, team_id, name, tournament_type, handicap=0, players=()):
        self.teams[team_id] = Team(
            id=team_id, name=name, tournament_type=tournament_type, handicap=handicap
        )
        self.rosters[team_id] = []
        for player_id, player_name in players:
            self.players[player_id] = Player(id=player_id, name=player_name)
            self.rosters[team_id].append(player_id)

    def add_score(self, team_id, hole_number, strokes, drive_player_id, mulligan_player_id=None):
        team = self.teams[team_id]
        key = (team_id, hole_number, team.tournament_type)
        self.scores[key] = Score(
            id=f"score-{next(self._ids)}",
            team_id=team_id,
            hole_number=hole_number,
            strokes=strokes,
            drive_player_id=drive_player_id,
            mulligan_player_id=mulligan_player_id,
            tournament_type=team.tournament_type,
            created_at=datetime.now(timezone.utc),
        )

    def _check_reads(self):
        if self.fail_reads:
            raise psycopg.OperationalError("connection refused")

    def _store(self, entry):
        key = (entry.team_id, entry.hole_number, entry.tournament_type)
        existing = self.scores.get(key)
        score_id = existing.id if existing else f"score-{next(self._ids)}"
        self.scores[key] = Score(
            id=score_id,
            team_id=entry.team_id,
            hole_number=entry.hole_number,
            strokes=entry.strokes,
            drive_player_id=entry.drive_player_id,
            mulligan_player_id=entry.mulligan_player_id,
            tournament_type=entry.tournament_type,
            created_at=datetime.now(timezone.utc),
        )
        return score_id

    def _check_write(self, entries):
        if self.deny_all_writes:
            raise errors.InsufficientPrivilege(RLS_MESSAGE)
        if self.deny_mulligan_writes and any(entry.mulligan_player_id for entry in entries):
            raise errors.InsufficientPrivilege(RLS_MESSAGE)

    def _check_allowance(self, entries, allowance):
        if allowance is None or not entries:
            return
        final_entries = {entry.hole_number: entry for entry in entries}
        requested = [entry.mulligan_player_id for entry in final_entries.values() if entry.mulligan_player_id]
        used = Counter(
            score.mulligan_player_id
            for score in self.scores.values()
            if score.team_id == entries[0].team_id
            and score.tournament_type == entries[0].tournament_type
            and score.mulligan_player_id
            and score.hole_number not in final_entries
        )
        used.update(requested)
        for player_id in requested:
            if used[player_id] > allowance:
                raise db.MulliganLimitReached(player_id)

    # scramble.db surface

    async def fetch_tournament(self, database_url, tournament_type):
        self._check_reads()
        return self.tournaments.get(tournament_type)

    async def fetch_tournaments(self, database_url):
        self._check_reads()
        return sorted(self.tournaments.values(), key=lambda item: item.type)

    async def upsert_tournament(self, database_url, tournament_type, name, default_mulligans, course_pars):
        self.add_tournament(tournament_type, default_mulligans, course_pars, name=name)

    async def update_course_pars(self, database_url, tournament_type, course_pars):
        tournament = self.tournaments.get(tournament_type)
        if tournament is None:
            return False
        self.add_tournament(tournament_type, tournament.default_mulligans, course_pars, tournament.name)
        return True

    async def fetch_teams(self, database_url, tournament_type):
        self._check_reads()
        teams = [team for team in self.teams.values() if team.tournament_type == tournament_type]
        return sorted(teams, key=lambda team: team.name)

    async def fetch_team(self, database_url, team_id):
        self._check_reads()
        return self.teams.get(team_id)

    async def insert_team(self, database_url, name, tournament_type, handicap=0):
        team_id = f"team-{next(self._ids)}"
        self.add_team(team_id, name, tournament_type, handicap)
        return team_id

    async def insert_player(self, database_url, name):
        player_id = f"player-{next(self._ids)}"
        self.players[player_id] = Player(id=player_id, name=name)
        return player_id

    async def add_team_player(self, database_url, team_id, player_id):
        if player_id not in self.rosters[team_id]:
            self.rosters[team_id].append(player_id)

    async def fetch_team_players(self, database_url, team_id):
        self._check_reads()
        players = [self.players[player_id] for player_id in self.rosters.get(team_id, [])]
        return sorted(players, key=lambda player: player.name)

    async def fetch_team_player_ids(self, database_url, team_id):
        self._check_reads()
        return set(self.rosters.get(team_id, []))

    async def fetch_rosters(self, database_url, tournament_type):
        self._check_reads()
        return {
            team_id: sorted(
                (self.players[player_id] for player_id in player_ids),
                key=lambda player: player.name,
            )
            for team_id, player_ids in self.rosters.items()
            if self.teams[team_id].tournament_type == tournament_type
        }

    async def fetch_scores(self, database_url, tournament_type):
        self._check_reads()
        scores = [score for score in self.scores.values() if score.tournament_type == tournament_type]
        return sorted(scores, key=lambda score: (score.team_id, score.hole_number))

    async def fetch_team_scores(self, database_url, team_id):
        self._check_reads()
        scores = [score for score in self.scores.values() if score.team_id == team_id]
        return sorted(scores, key=lambda score: score.hole_number)

    async def upsert_score(self, database_url, entry, mulligan_allowance=None):
        self.write_calls += 1
        self._check_allowance([entry], mulligan_allowance)
        self._check_write([entry])
        return self._store(entry)

    async def upsert_scores(self, database_url, entries, mulligan_allowance=None):
        entries = list(entries)
        self.write_calls += 1
        self._check_allowance(entries, mulligan_allowance)
        self._check_write(entries)
        return [self._store(entry) for entry in entries]

    async def delete_scores(self, database_url, tournament_type):
        doomed = [key for key, score in self.scores.items() if score.tournament_type == tournament_type]
        for key in doomed:
            del self.scores[key]
        return len(doomed)


DB_FUNCTIONS = (
    "fetch_tournament",
    "fetch_tournaments",
    "upsert_tournament",
    "update_course_pars",
    "fetch_teams",
    "fetch_team",
    "insert_team",
    "insert_player",
    "add_team_player",
    "fetch_team_players",
    "fetch_team_player_ids",
    "fetch_rosters",
    "fetch_scores",
    "fetch_team_scores",
    "upsert_score",
    "upsert_scores",
    "delete_scores",
)


@pytest.fixture
def store(monkeypatch):
    fake = FakeStore()
    for name in DB_FUNCTIONS:
        monkeypatch.setattr(db, name, getattr(fake, name))
    return fake


@pytest.fixture
def seeded(store):
    """Two 2-man teams and one 4-man team on a par-72 layout; two mulligans for 2-man, one for 4-man."""
    store.add_tournament("2-man", default_mulligans=2)
    store.add_tournament("4-man", default_mulligans=1)
    store.add_team("t1", "Team Alpha", "2-man", handicap=3, players=[("p1", "John Smith"), ("p2", "Jane Doe")])
    store.add_team("t2", "Team Beta", "2-man", handicap=0, players=[("p3", "Mike Johnson"), ("p4", "Sarah Williams")])
    store.add_team(
        "t3",
        "Fairway Four",
        "4-man",
        handicap=8,
        players=[("p5", "Alex Hart"), ("p6", "Sam Reed"), ("p7", "Jordan Blake"), ("p8", "Casey Quinn")],
    )
    return store
