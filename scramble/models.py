from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class Tournament:
    type: str
    name: str
    default_mulligans: int = 0
    course_pars: dict[str, int] = field(default_factory=dict)

    def par_for(self, hole_number: int) -> Optional[int]:
        return self.course_pars.get(str(hole_number))

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    tournament_type: str
    handicap: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Player:
    id: str
    name: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Score:
    id: str
    team_id: str
    hole_number: int
    strokes: int
    drive_player_id: str
    tournament_type: str
    mulligan_player_id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if self.created_at is not None:
            data["created_at"] = self.created_at.isoformat()
        return data


@dataclass(frozen=True)
class ScoreInput:
    """One hole's submission, before it has been validated or stored."""

    team_id: str
    tournament_type: str
    hole_number: int
    strokes: int
    drive_player_id: str
    mulligan_player_id: Optional[str] = None

    def without_mulligan(self) -> "ScoreInput":
        return ScoreInput(
            team_id=self.team_id,
            tournament_type=self.tournament_type,
            hole_number=self.hole_number,
            strokes=self.strokes,
            drive_player_id=self.drive_player_id,
            mulligan_player_id=None,
        )


@dataclass
class DriveCount:
    id: str
    name: str
    count: int = 0


@dataclass
class MulliganCount:
    id: str
    name: str
    used: int = 0
    remaining: int = 0


@dataclass
class TeamStanding:
    team: Team
    total_strokes: int
    relative_to_par: int
    net_relative_to_par: int
    holes_completed: int
    total_remaining_mulligans: int
    drive_counts: list[DriveCount]
    mulligan_counts: list[MulliganCount]
    scores: list[Score]
    position: int = 0
    tied: bool = False

    def to_dict(self) -> dict:
        return {
            "team": self.team.to_dict(),
            "position": self.position,
            "tied": self.tied,
            "total_strokes": self.total_strokes,
            "relative_to_par": self.relative_to_par,
            "net_relative_to_par": self.net_relative_to_par,
            "holes_completed": self.holes_completed,
            "total_remaining_mulligans": self.total_remaining_mulligans,
            "drive_counts": [asdict(entry) for entry in self.drive_counts],
            "mulligan_counts": [asdict(entry) for entry in self.mulligan_counts],
            "scores": [score.to_dict() for score in self.scores],
        }


@dataclass
class Leaderboard:
    tournament: Optional[Tournament]
    standings: list[TeamStanding] = field(default_factory=list)


@dataclass
class SubmissionResult:
    success: bool
    data: Any = None
    error: Optional[str] = None
    warning: Optional[str] = None
    degraded: bool = False

    @classmethod
    def ok(cls, data: Any) -> "SubmissionResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> "SubmissionResult":
        return cls(success=False, error=error)

    def as_dict(self) -> dict:
        if not self.success:
            return {"success": False, "error": self.error}
        payload: dict[str, Any] = {"success": True, "data": self.data}
        if self.degraded:
            payload["degraded"] = True
            payload["warning"] = self.warning
        return payload
