import asyncio

from scramble.leaderboard import (
    build_leaderboard,
    count_drives,
    count_mulligans,
    get_leaderboard,
    get_team_summary,
)
from scramble.models import Player, Score, Team, Tournament
from scramble.seed import default_course_pars

TOURNAMENT = Tournament(type="2-man", name="2-Man Scramble", default_mulligans=2, course_pars=default_course_pars())
ROSTER = [Player("p1", "John Smith"), Player("p2", "Jane Doe")]


def _score(team_id, hole, strokes, drive, mulligan=None, tournament_type="2-man"):
    return Score(
        id=f"{team_id}-{hole}",
        team_id=team_id,
        hole_number=hole,
        strokes=strokes,
        drive_player_id=drive,
        mulligan_player_id=mulligan,
        tournament_type=tournament_type,
    )


def test_relative_to_par_is_sum_of_strokes_minus_par():
    team = Team("t1", "Team Alpha", "2-man", handicap=3)
    scores = [
        _score("t1", 1, 3, "p1"),
        _score("t1", 2, 5, "p2"),
        _score("t1", 3, 3, "p1", mulligan="p2"),
        _score("t1", 4, 4, "p2"),
    ]
    [standing] = build_leaderboard(TOURNAMENT, [team], scores, {"t1": ROSTER})

    expected = sum(score.strokes - TOURNAMENT.par_for(score.hole_number) for score in scores)
    assert standing.relative_to_par == expected == -1
    assert standing.total_strokes == 15
    assert standing.holes_completed == 4
    assert standing.net_relative_to_par == standing.relative_to_par - team.handicap == -4


def test_hole_without_par_counts_strokes_but_not_relative():
    tournament = Tournament(type="2-man", name="x", course_pars={"1": 4})
    team = Team("t1", "Team Alpha", "2-man")
    scores = [_score("t1", 1, 5, "p1"), _score("t1", 2, 3, "p2")]

    [standing] = build_leaderboard(tournament, [team], scores, {"t1": ROSTER})

    assert standing.total_strokes == 8
    assert standing.relative_to_par == 1


def test_teams_sorted_by_net_then_gross():
    teams = [
        Team("a", "Aces", "2-man", handicap=0),
        Team("b", "Birdies", "2-man", handicap=2),
        Team("c", "Condors", "2-man", handicap=1),
    ]
    scores = [
        _score("a", 1, 3, "x"),  # gross -1, net -1
        _score("b", 1, 5, "x"),  # gross +1, net -1
        _score("c", 1, 6, "x"),  # gross +2, net +1
    ]

    standings = build_leaderboard(TOURNAMENT, teams, scores, {})

    assert [s.team.id for s in standings] == ["a", "b", "c"]
    keys = [(s.net_relative_to_par, s.relative_to_par) for s in standings]
    assert keys == sorted(keys)


def test_positions_share_rank_on_ties():
    teams = [
        Team("a", "Aces", "2-man"),
        Team("b", "Birdies", "2-man"),
        Team("c", "Condors", "2-man"),
    ]
    scores = [_score("a", 1, 3, "x"), _score("b", 1, 3, "x"), _score("c", 1, 4, "x")]

    standings = build_leaderboard(TOURNAMENT, teams, scores, {})

    assert [(s.team.id, s.position, s.tied) for s in standings] == [
        ("a", 1, True),
        ("b", 1, True),
        ("c", 3, False),
    ]


def test_team_without_scores_is_listed_at_minus_handicap():
    teams = [Team("t1", "Team Alpha", "2-man", handicap=4)]

    [standing] = build_leaderboard(TOURNAMENT, teams, [], {"t1": ROSTER})

    assert standing.holes_completed == 0
    assert standing.relative_to_par == 0
    assert standing.net_relative_to_par == -4
    assert standing.total_remaining_mulligans == 4


def test_scores_from_other_tournament_are_ignored():
    teams = [Team("t1", "Team Alpha", "2-man")]
    scores = [_score("t1", 1, 9, "p1", tournament_type="4-man")]

    [standing] = build_leaderboard(TOURNAMENT, teams, scores, {"t1": ROSTER})

    assert standing.total_strokes == 0


def test_count_drives_includes_players_without_drives():
    scores = [_score("t1", 1, 4, "p1"), _score("t1", 2, 4, "p1"), _score("t1", 3, 4, "ghost")]

    counts = {entry.id: (entry.name, entry.count) for entry in count_drives(scores, ROSTER)}

    assert counts == {"p1": ("John Smith", 2), "p2": ("Jane Doe", 0), "ghost": ("ghost", 1)}


def test_count_mulligans_tracks_used_and_remaining():
    scores = [
        _score("t1", 1, 4, "p1", mulligan="p2"),
        _score("t1", 2, 4, "p1", mulligan="p2"),
        _score("t1", 3, 4, "p1", mulligan="stranger"),
    ]

    counts = {entry.id: (entry.used, entry.remaining) for entry in count_mulligans(scores, ROSTER, 3)}

    assert counts == {"p1": (0, 3), "p2": (2, 1)}


def test_get_leaderboard_reads_store(seeded):
    seeded.add_score("t1", 1, 3, "p1")
    seeded.add_score("t1", 2, 4, "p2", mulligan_player_id="p1")
    seeded.add_score("t2", 1, 4, "p3")
    seeded.add_score("t3", 1, 2, "p5")

    leaderboard = asyncio.run(get_leaderboard("postgresql://test", "2-man"))

    assert leaderboard.tournament.type == "2-man"
    assert [s.team.id for s in leaderboard.standings] == ["t1", "t2"]
    alpha = leaderboard.standings[0]
    assert alpha.relative_to_par == -1
    assert alpha.net_relative_to_par == -4
    assert alpha.total_remaining_mulligans == 3
    assert [score.hole_number for score in alpha.scores] == [1, 2]


def test_get_leaderboard_unknown_tournament_is_empty(store):
    leaderboard = asyncio.run(get_leaderboard("postgresql://test", "2-man"))

    assert leaderboard.tournament is None
    assert leaderboard.standings == []


def test_get_leaderboard_database_error_is_empty(seeded):
    seeded.fail_reads = True

    leaderboard = asyncio.run(get_leaderboard("postgresql://test", "2-man"))

    assert leaderboard.tournament is None
    assert leaderboard.standings == []


def test_team_summary_reports_minimum_drives(seeded):
    for hole in range(1, 6):
        seeded.add_score("t1", hole, 4, "p1")
    for hole in range(6, 10):
        seeded.add_score("t1", hole, 4, "p2")

    summary = asyncio.run(get_team_summary("postgresql://test", "t1"))

    assert summary["minimum_drives"] == 5
    assert summary["meets_minimum_drives"] is False

    seeded.add_score("t1", 10, 4, "p2")
    summary = asyncio.run(get_team_summary("postgresql://test", "t1"))
    assert summary["meets_minimum_drives"] is True


def test_team_summary_unknown_team(seeded):
    assert asyncio.run(get_team_summary("postgresql://test", "nope")) is None
