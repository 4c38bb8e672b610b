"""
Record and pairing logic for a 16-team Swiss stage.

Records are always recomputed from the match list; nothing keeps a running
tally. Team and match values are immutable, a decided match is replaced
rather than edited.
"""

from dataclasses import dataclass, field, replace
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from swiss_config import (
    BO1,
    BO3,
    LOSSES_TO_ELIMINATE,
    TBD,
    WINS_TO_QUALIFY,
)

ACTIVE = "active"
QUALIFIED = "qualified"
ELIMINATED = "eliminated"


class SwissError(ValueError):
    """Base error for invalid Swiss stage input."""


@dataclass(frozen=True)
class Team:
    name: str
    region: str = ""
    zone: Optional[str] = None  # Same concept as region unless given explicitly

    def __post_init__(self):
        if not self.name:
            raise SwissError("Team name must not be empty")
        if self.zone is None:
            object.__setattr__(self, "zone", self.region)

    @classmethod
    def from_dict(cls, data: dict) -> "Team":
        return cls(name=data["name"], region=data.get("region", ""), zone=data.get("zone"))

    def to_dict(self) -> dict:
        return {"name": self.name, "region": self.region, "zone": self.zone}


@dataclass(frozen=True)
class Match:
    round_num: int
    team_a: str
    team_b: str
    group: str = "0-0"
    winner: Optional[str] = None
    format: str = BO1

    @property
    def is_decided(self) -> bool:
        return is_decided(self)

    def involves(self, team: str) -> bool:
        return team in (self.team_a, self.team_b)

    def opponent_of(self, team: str) -> Optional[str]:
        if team == self.team_a:
            return self.team_b
        if team == self.team_b:
            return self.team_a
        return None

    def with_winner(self, winner: str) -> "Match":
        if winner not in (self.team_a, self.team_b):
            raise SwissError(f"{winner} did not play in {self.team_a} vs {self.team_b}")
        return replace(self, winner=winner)

    @classmethod
    def from_dict(cls, data: dict) -> "Match":
        round_num = int(data["round"])
        group = data.get("group", "0-0")
        return cls(
            round_num=round_num,
            team_a=data.get("teamA", TBD),
            team_b=data.get("teamB", TBD),
            group=group,
            winner=data.get("winner") or None,
            format=data.get("format") or get_match_format(round_num, group),
        )

    def to_dict(self) -> dict:
        return {
            "round": self.round_num,
            "group": self.group,
            "teamA": self.team_a,
            "teamB": self.team_b,
            "winner": self.winner,
            "format": self.format,
        }


@dataclass(frozen=True)
class TeamRecord:
    wins: int = 0
    losses: int = 0

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}"

    @property
    def games_played(self) -> int:
        return self.wins + self.losses


@dataclass(frozen=True)
class TeamStatus:
    status: str
    reason: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE


@dataclass(frozen=True)
class TeamStanding:
    """A team merged with its current record, as held in a record group."""

    team: Team
    team_record: TeamRecord = field(default_factory=TeamRecord)

    @property
    def name(self) -> str:
        return self.team.name

    @property
    def region(self) -> str:
        return self.team.region

    @property
    def wins(self) -> int:
        return self.team_record.wins

    @property
    def losses(self) -> int:
        return self.team_record.losses

    @property
    def record(self) -> str:
        return self.team_record.record

    @property
    def status(self) -> TeamStatus:
        return get_team_status(self.team_record)


@dataclass
class OpponentProbability:
    """One entry of an opponent distribution. ``opponent`` is None for a terminal status entry."""

    opponent: Optional[str]
    probability: float
    status: str = ACTIVE

    def to_dict(self) -> dict:
        return {"opponent": self.opponent, "probability": self.probability, "status": self.status}


# --- Record engine ---

def is_decided(match: Match) -> bool:
    """A match counts once it has a winner and two real entrants."""
    return bool(match.winner) and match.team_a != TBD and match.team_b != TBD


def decided_matches(matches: Iterable[Match], before_round: Optional[int] = None) -> List[Match]:
    return [
        m for m in matches
        if is_decided(m) and (before_round is None or m.round_num < before_round)
    ]


def get_current_round(matches: Iterable[Match]) -> int:
    return max((m.round_num for m in matches), default=0)


def parse_group(group: str) -> Tuple[int, int]:
    try:
        wins, losses = (int(part) for part in group.split("-"))
    except ValueError:
        raise SwissError(f"Invalid record group {group!r}, expected '<wins>-<losses>'")
    return wins, losses


def get_team_record(team: str, matches: Iterable[Match]) -> TeamRecord:
    wins = 0
    losses = 0
    for match in matches:
        if not match.involves(team) or not is_decided(match):
            continue
        if match.winner == team:
            wins += 1
        else:
            losses += 1
    return TeamRecord(wins=wins, losses=losses)


def get_team_status(team_record: TeamRecord) -> TeamStatus:
    if team_record.wins >= WINS_TO_QUALIFY:
        return TeamStatus(QUALIFIED, f"{team_record.record} {QUALIFIED}")
    if team_record.losses >= LOSSES_TO_ELIMINATE:
        return TeamStatus(ELIMINATED, f"{team_record.record} {ELIMINATED}")
    return TeamStatus(ACTIVE)


def get_played_opponents(team: str, matches: Iterable[Match]) -> Set[str]:
    opponents = set()
    for match in matches:
        opponent = match.opponent_of(team)
        if opponent is not None and opponent != TBD:
            opponents.add(opponent)
    return opponents


def group_teams_by_record(teams: Iterable[Team], matches: Sequence[Match]) -> Dict[str, List[TeamStanding]]:
    groups: Dict[str, List[TeamStanding]] = {}
    for team in teams:
        standing = TeamStanding(team, get_team_record(team.name, matches))
        groups.setdefault(standing.record, []).append(standing)
    return groups


def is_same_region(team_a: Team, team_b: Team) -> bool:
    return team_a.region == team_b.region


def find_team(name: str, teams: Iterable[Team]) -> Team:
    team = next((t for t in teams if t.name == name), None)
    if team is None:
        raise SwissError(f"Unknown team {name!r}")
    return team


# --- Pairing generator ---

def get_match_format(round_num: int, group: str) -> str:
    if round_num <= 2:
        return BO1
    # Round 3: only the 2-0 and 0-2 brackets play Bo3
    if round_num == 3:
        return BO3 if group in ("2-0", "0-2") else BO1
    return BO3


def _active_standings(standings: Iterable[TeamStanding]) -> List[TeamStanding]:
    return [s for s in standings if s.status.is_active]


def generate_possible_matches(teams: Iterable[Team], matches: Sequence[Match], round_num: int) -> List[Match]:
    """
    Enumerate every unordered pairing inside each record group between active
    teams that have not met. Used for counting candidates, not for drawing.
    """
    possible = []
    for group, standings in group_teams_by_record(teams, matches).items():
        active = _active_standings(standings)
        for team_a, team_b in combinations(active, 2):
            if team_b.name in get_played_opponents(team_a.name, matches):
                continue
            possible.append(Match(
                round_num=round_num,
                team_a=team_a.name,
                team_b=team_b.name,
                group=group,
                format=get_match_format(round_num, group),
            ))
    return possible


def get_possible_opponents(team: str, group: str, teams: Iterable[Team], matches: Sequence[Match],
                           round_num: int) -> List[TeamStanding]:
    played = get_played_opponents(team, matches)
    standings = group_teams_by_record(teams, matches).get(group, [])
    return [
        s for s in _active_standings(standings)
        if s.name != team and s.name not in played
    ]


def is_valid_matchup(team_a: str, team_b: str, matches: Iterable[Match],
                     current_round_matches: Iterable[Match] = ()) -> bool:
    if team_b in get_played_opponents(team_a, matches):
        return False
    already_scheduled = any(
        m.involves(team_a) or m.involves(team_b) for m in current_round_matches
    )
    return not already_scheduled
