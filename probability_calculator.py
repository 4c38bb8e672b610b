"""
Monte Carlo qualification estimates.

Each trial plays the rest of the Swiss stage: active teams are grouped by
record, shuffled and paired with their neighbour in the shuffled order (no
rematch check, for speed), and every match is a Bernoulli draw.
"""

import logging
import random
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from swiss_config import LOSSES_TO_ELIMINATE, MAX_ROUNDS, WINS_TO_QUALIFY
from swiss_logic import (
    ACTIVE,
    ELIMINATED,
    QUALIFIED,
    Match,
    SwissError,
    Team,
    TeamRecord,
    decided_matches,
    find_team,
    get_team_record,
    get_team_status,
)

logger = logging.getLogger(__name__)

DEFAULT_WIN_PROBABILITY = 0.5


class SimulationError(SwissError):
    """Raised when a Monte Carlo run cannot start from the given input."""


@dataclass
class SimulatedTeam:
    name: str
    zone: Optional[str] = None
    wins: int = 0
    losses: int = 0

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}"

    @property
    def games_played(self) -> int:
        return self.wins + self.losses

    @property
    def status(self) -> str:
        return get_team_status(TeamRecord(self.wins, self.losses)).status

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE


@dataclass
class TeamQualificationResult:
    name: str
    qualified: int = 0
    eliminated: int = 0
    final_records: Dict[str, int] = field(default_factory=dict)
    qualification_probability: float = 0.0
    elimination_probability: float = 0.0
    final_record_probabilities: Dict[str, float] = field(default_factory=dict)

    def record_outcome(self, team: SimulatedTeam):
        if team.status == QUALIFIED:
            self.qualified += 1
        elif team.status == ELIMINATED:
            self.eliminated += 1
        self.final_records[team.record] = self.final_records.get(team.record, 0) + 1

    def finalize(self, simulations: int):
        self.qualification_probability = _percentage(self.qualified, simulations)
        self.elimination_probability = _percentage(self.eliminated, simulations)
        self.final_record_probabilities = {
            record: _percentage(count, simulations)
            for record, count in sorted(self.final_records.items())
        }

    def to_dict(self) -> dict:
        return {
            "qualified": self.qualified,
            "eliminated": self.eliminated,
            "qualificationProbability": self.qualification_probability,
            "eliminationProbability": self.elimination_probability,
            "finalRecords": self.final_record_probabilities,
        }


@dataclass
class QualificationReport:
    simulations: int
    teams: Dict[str, TeamQualificationResult] = field(default_factory=dict)

    def __getitem__(self, name: str) -> TeamQualificationResult:
        return self.teams[name]

    def to_dict(self) -> dict:
        return {
            "simulations": self.simulations,
            "teams": {name: result.to_dict() for name, result in self.teams.items()},
        }


def _percentage(count: int, total: int) -> float:
    return round(count / total * 100, 1)


def _validate_inputs(teams: Sequence[Team], matches: Iterable[Match], simulations: int,
                     win_probabilities: Mapping[str, float]) -> Dict[str, float]:
    """Check the run can start; returns the win probabilities as floats."""
    if simulations < 1:
        raise SimulationError("simulations must be at least 1")
    if len({t.name for t in teams}) != len(teams):
        raise SimulationError("Team names must be unique")

    for match in decided_matches(matches):
        find_team(match.team_a, teams)
        find_team(match.team_b, teams)

    for team in teams:
        played = get_team_record(team.name, matches).games_played
        if played > MAX_ROUNDS:
            raise SimulationError(f"{team.name} has {played} decided matches, more than {MAX_ROUNDS} rounds")

    probabilities = {}
    for key, value in win_probabilities.items():
        if "_vs_" not in key:
            raise SimulationError(f"Win probability key {key!r} must look like 'teamA_vs_teamB'")
        try:
            probability = float(value)
        except (TypeError, ValueError):
            raise SimulationError(f"Win probability for {key} must be a number, got {value!r}")
        if not 0.0 <= probability <= 1.0:
            raise SimulationError(f"Win probability for {key} must be between 0 and 1, got {probability}")
        probabilities[key] = probability
    return probabilities


def get_win_probability(team_a: str, team_b: str, win_probabilities: Mapping[str, float]) -> float:
    """Probability that team_a beats team_b; a mirrored key is used with its complement."""
    match_key = f"{team_a}_vs_{team_b}"
    reverse_key = f"{team_b}_vs_{team_a}"
    if match_key in win_probabilities:
        return win_probabilities[match_key]
    if reverse_key in win_probabilities:
        return 1.0 - win_probabilities[reverse_key]
    return DEFAULT_WIN_PROBABILITY


def simulate_match_result(team_a: str, team_b: str, win_probabilities: Mapping[str, float],
                          rng: random.Random) -> str:
    if rng.random() < get_win_probability(team_a, team_b, win_probabilities):
        return team_a
    return team_b


def update_team_record(records: Dict[str, SimulatedTeam], team: str, won: bool):
    if won:
        records[team].wins += 1
    else:
        records[team].losses += 1


def generate_round_matches(records: Dict[str, SimulatedTeam], round_num: int,
                           rng: random.Random) -> List[Match]:
    """
    Pair every active team that has not played ``round_num`` yet, inside its
    record group, by shuffling the group and pairing neighbours.
    """
    groups = defaultdict(list)
    for team in records.values():
        if team.is_active and team.games_played < round_num:
            groups[team.record].append(team.name)

    round_matches = []
    for group, names in groups.items():
        rng.shuffle(names)
        for i in range(0, len(names) - 1, 2):
            round_matches.append(Match(round_num=round_num, team_a=names[i], team_b=names[i + 1], group=group))
    return round_matches


def build_starting_records(teams: Sequence[Team], completed_matches: Sequence[Match]) -> Dict[str, SimulatedTeam]:
    history = decided_matches(completed_matches)
    records = {}
    for team in teams:
        current = get_team_record(team.name, history)
        records[team.name] = SimulatedTeam(team.name, team.zone, current.wins, current.losses)
    return records


def simulate_swiss_rounds(starting_records: Mapping[str, SimulatedTeam], win_probabilities: Mapping[str, float],
                          rng: random.Random) -> Dict[str, SimulatedTeam]:
    """Play one trial of the remaining stage and return every team's final tally."""
    records = {name: replace(team) for name, team in starting_records.items()}

    for round_num in range(1, MAX_ROUNDS + 1):
        for match in generate_round_matches(records, round_num, rng):
            winner = simulate_match_result(match.team_a, match.team_b, win_probabilities, rng)
            update_team_record(records, match.team_a, winner == match.team_a)
            update_team_record(records, match.team_b, winner == match.team_b)

    return records


def calculate_qualification_probabilities(teams: Sequence[Team], matches: Sequence[Match],
                                          simulations: int = 10000,
                                          win_probabilities: Optional[Mapping[str, float]] = None,
                                          rng: Optional[random.Random] = None,
                                          progress_callback: Optional[Callable[[int, int], None]] = None
                                          ) -> QualificationReport:
    """
    Estimate qualification and elimination odds by playing the remaining
    stage ``simulations`` times.

    Args:
        teams: All teams in the stage
        matches: Match history; pending and TBD matches are ignored
        simulations: Number of trials
        win_probabilities: Optional {"A_vs_B": p} overrides of the 50/50 default
        rng: Random source, unseeded when omitted
        progress_callback: Called with (trial index, simulations) after every trial

    Returns:
        QualificationReport with per-team counts and one-decimal percentages
    """
    win_probabilities = _validate_inputs(teams, matches, simulations, win_probabilities or {})
    rng = rng or random.Random()

    report = QualificationReport(
        simulations=simulations,
        teams={team.name: TeamQualificationResult(team.name) for team in teams},
    )

    starting_records = build_starting_records(teams, matches)
    for i in range(simulations):
        outcome = simulate_swiss_rounds(starting_records, win_probabilities, rng)
        for name, team in outcome.items():
            report.teams[name].record_outcome(team)
        if progress_callback:
            progress_callback(i, simulations)

    for result in report.teams.values():
        result.finalize(simulations)

    logger.debug("Ran %d Swiss stage simulations for %d teams", simulations, len(teams))
    return report


def _same_pairing(a: Match, b: Match) -> bool:
    return a.round_num == b.round_num and {a.team_a, a.team_b} == {b.team_a, b.team_b}


def calculate_conditional_probabilities(teams: Sequence[Team], matches: Sequence[Match],
                                        hypothetical_matches: Sequence[Match], simulations: int = 5000,
                                        win_probabilities: Optional[Mapping[str, float]] = None,
                                        rng: Optional[random.Random] = None,
                                        progress_callback: Optional[Callable[[int, int], None]] = None
                                        ) -> QualificationReport:
    """Qualification estimates after assuming the outcomes in ``hypothetical_matches``."""
    # A hypothetical result replaces the pending match it decides
    kept = [
        m for m in matches
        if m.winner or not any(_same_pairing(m, h) for h in hypothetical_matches)
    ]
    combined = kept + list(hypothetical_matches)
    return calculate_qualification_probabilities(teams, combined, simulations, win_probabilities, rng,
                                                 progress_callback)


def get_possible_final_records(team: str, teams: Sequence[Team], matches: Sequence[Match]) -> List[str]:
    current = get_team_record(team, matches)
    if not get_team_status(current).is_active:
        return [current.record]

    remaining = MAX_ROUNDS - current.games_played
    max_wins = min(WINS_TO_QUALIFY, current.wins + remaining)
    max_losses = min(LOSSES_TO_ELIMINATE, current.losses + remaining)

    records = []
    for wins in range(current.wins, max_wins + 1):
        for losses in range(current.losses, max_losses + 1):
            finished = wins >= WINS_TO_QUALIFY or losses >= LOSSES_TO_ELIMINATE or wins + losses == MAX_ROUNDS
            if wins + losses <= MAX_ROUNDS and finished:
                records.append(f"{wins}-{losses}")
    return records
