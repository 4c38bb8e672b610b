"""
Closed-form probability estimates.

Every match is treated as an independent coin flip. Qualification odds come
from a binomial sum over the remaining rounds; opponent odds come from
uniform weights inside a record group, adjusted by the pairing policy.
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from draw_simulation import calculate_opponent_probabilities_monte_carlo
from swiss_config import (
    DEFAULT_POLICY,
    LOSSES_TO_ELIMINATE,
    MAX_ROUNDS,
    WINS_TO_QUALIFY,
    MonteCarloValidation,
    PairingPolicy,
)
from swiss_logic import (
    ELIMINATED,
    QUALIFIED,
    Match,
    OpponentProbability,
    SwissError,
    Team,
    TeamRecord,
    TeamStanding,
    decided_matches,
    find_team,
    get_played_opponents,
    get_team_record,
    get_team_status,
    group_teams_by_record,
    is_same_region,
    parse_group,
)

logger = logging.getLogger(__name__)

WIN = "win"
LOSE = "lose"


@dataclass(frozen=True)
class QualificationProbability:
    probability: float
    status: str
    current_record: str

    def to_dict(self) -> dict:
        return {"probability": self.probability, "status": self.status, "currentRecord": self.current_record}


@dataclass(frozen=True)
class RecordProbability:
    record: str
    probability: float


def combination(n: int, k: int) -> float:
    if k < 0 or k > n:
        return 0.0
    if k == 0 or k == n:
        return 1.0
    k = min(k, n - k)
    result = 1.0
    for i in range(1, k + 1):
        result = result * (n - i + 1) / i
    return result


def binomial_probability(n: int, k: int, p: float = 0.5) -> float:
    return combination(n, k) * p ** k * (1 - p) ** (n - k)


def _remaining_rounds(team_record: TeamRecord) -> int:
    return max(0, MAX_ROUNDS - team_record.games_played)


def calculate_qualification_probability(team: str, teams: Sequence[Team],
                                        matches: Sequence[Match]) -> QualificationProbability:
    find_team(team, teams)
    current = get_team_record(team, matches)
    status = get_team_status(current)
    logger.debug("Qualification probability for %s: record %s, %s", team, current.record, status.status)

    if status.status == QUALIFIED:
        return QualificationProbability(1.0, QUALIFIED, current.record)
    if status.status == ELIMINATED:
        return QualificationProbability(0.0, ELIMINATED, current.record)

    remaining = _remaining_rounds(current)
    probability = 0.0
    for wins in range(remaining + 1):
        if current.wins + wins >= WINS_TO_QUALIFY:
            probability += binomial_probability(remaining, wins)

    logger.debug("%s: %d rounds left, qualification probability %.4f", team, remaining, probability)
    return QualificationProbability(probability, status.status, current.record)


def calculate_elimination_probability(team: str, teams: Sequence[Team],
                                      matches: Sequence[Match]) -> QualificationProbability:
    """
    Probability of reaching three losses first. For an active team this is
    the complement of qualifying, since five rounds always end the stage.
    """
    find_team(team, teams)
    current = get_team_record(team, matches)
    status = get_team_status(current)

    if status.status == QUALIFIED:
        return QualificationProbability(0.0, QUALIFIED, current.record)
    if status.status == ELIMINATED:
        return QualificationProbability(1.0, ELIMINATED, current.record)

    remaining = _remaining_rounds(current)
    probability = 0.0
    for wins in range(remaining + 1):
        losses = remaining - wins
        if current.wins + wins < WINS_TO_QUALIFY and current.losses + losses >= LOSSES_TO_ELIMINATE:
            probability += binomial_probability(remaining, wins)
    return QualificationProbability(probability, status.status, current.record)


# --- Opponent distribution ---

def get_adjacent_groups(group: str, groups: Dict[str, List[TeamStanding]]) -> List[str]:
    """The existing groups one win above and one loss below ``group``."""
    wins, losses = parse_group(group)
    adjacent = []
    for key in (f"{wins + 1}-{losses}", f"{wins}-{losses + 1}"):
        if key in groups:
            adjacent.append(key)
    return adjacent


def _normalize(probabilities: List[OpponentProbability]) -> List[OpponentProbability]:
    total = sum(p.probability for p in probabilities)
    if total > 0:
        for p in probabilities:
            p.probability = p.probability / total
    probabilities.sort(key=lambda p: p.probability, reverse=True)
    return probabilities


def _draw_probabilities_for_round(team: str, teams: Sequence[Team], history: Sequence[Match],
                                  policy: PairingPolicy) -> List[OpponentProbability]:
    target = find_team(team, teams)
    team_record = get_team_record(team, history)
    if not get_team_status(team_record).is_active:
        return []

    groups = group_teams_by_record(teams, history)
    played = get_played_opponents(team, history)

    def candidates(group):
        return [
            s for s in groups.get(group, [])
            if s.name != team and s.status.is_active and s.name not in played
        ]

    def weight(standing, base):
        if is_same_region(target, standing.team):
            return base * policy.same_region_discount
        return base

    probabilities = []
    same_group = candidates(team_record.record)
    for standing in same_group:
        probabilities.append(OpponentProbability(standing.name, weight(standing, 1.0 / len(same_group))))

    if not probabilities:
        for group in get_adjacent_groups(team_record.record, groups):
            adjacent = candidates(group)
            for standing in adjacent:
                base = policy.adjacent_group_weight / len(adjacent)
                probabilities.append(OpponentProbability(standing.name, weight(standing, base)))

    return _normalize(probabilities)


def _log_monte_carlo_check(team: str, teams: Sequence[Team], matches: Sequence[Match], round_num: int,
                           closed_form: List[OpponentProbability], validation: MonteCarloValidation,
                           rng: Optional[random.Random]):
    if round_num <= 1:
        logger.debug("Skipping Monte Carlo check for %s: round %d cannot be drawn", team, round_num)
        return

    sampled = calculate_opponent_probabilities_monte_carlo(
        team, teams, matches, round_num, simulations=validation.simulations, rng=rng
    )
    expected = {p.opponent: p.probability for p in closed_form}
    observed = {p.opponent: p.probability for p in sampled}
    difference = max(
        (abs(expected.get(name, 0.0) - observed.get(name, 0.0)) for name in set(expected) | set(observed)),
        default=0.0,
    )
    logger.info("Monte Carlo check for %s in round %d (%d draws): max difference %.3f",
                team, round_num, validation.simulations, difference)


def calculate_opponent_probabilities(team: str, teams: Sequence[Team], matches: Sequence[Match], round_num: int,
                                     policy: Optional[PairingPolicy] = None,
                                     validation: Optional[MonteCarloValidation] = None,
                                     rng: Optional[random.Random] = None) -> List[OpponentProbability]:
    """
    Opponent distribution for ``team`` in ``round_num``. An empty list means
    no opponent can be determined, not that every opponent has probability 0.
    """
    policy = policy or DEFAULT_POLICY
    history = decided_matches(matches, before_round=round_num)
    probabilities = _draw_probabilities_for_round(team, teams, history, policy)

    if validation is not None and validation.enabled:
        _log_monte_carlo_check(team, teams, matches, round_num, probabilities, validation, rng)
    return probabilities


def create_hypothetical_matches(matches: Sequence[Match], team: str, round_num: int, outcome: str) -> List[Match]:
    """Copy of ``matches`` with the team's pending match in ``round_num`` decided by ``outcome``."""
    if outcome not in (WIN, LOSE):
        raise SwissError(f"Outcome must be '{WIN}' or '{LOSE}', got {outcome!r}")

    hypothetical = list(matches)
    for i, match in enumerate(hypothetical):
        if match.round_num == round_num and match.involves(team) and not match.winner:
            winner = team if outcome == WIN else match.opponent_of(team)
            hypothetical[i] = match.with_winner(winner)
            break
    return hypothetical


def calculate_team_draw_probabilities(team: str, teams: Sequence[Team], matches: Sequence[Match],
                                      current_round: int, target_round: int, outcome: str,
                                      policy: Optional[PairingPolicy] = None) -> List[OpponentProbability]:
    policy = policy or DEFAULT_POLICY
    hypothetical = create_hypothetical_matches(matches, team, current_round, outcome)

    status = get_team_status(get_team_record(team, hypothetical))
    if not status.is_active:
        return [OpponentProbability(opponent=None, probability=1.0, status=status.status)]

    history = decided_matches(hypothetical, before_round=target_round)
    return _draw_probabilities_for_round(team, teams, history, policy)


# --- Meeting probability ---

def can_teams_meet(team_a: str, team_b: str, teams: Sequence[Team], matches: Sequence[Match],
                   round_num: int) -> bool:
    for name in (team_a, team_b):
        if not get_team_status(get_team_record(name, matches)).is_active:
            return False
    return team_b not in get_played_opponents(team_a, matches)


def get_possible_records(team: str, teams: Sequence[Team], matches: Sequence[Match],
                         target_round: int) -> List[RecordProbability]:
    """Distribution of the team's record at the draw of ``target_round``."""
    current = get_team_record(team, matches)
    rounds_to_play = max(0, target_round - 1 - current.games_played)
    if rounds_to_play == 0 or not get_team_status(current).is_active:
        return [RecordProbability(current.record, 1.0)]

    return [
        RecordProbability(
            f"{current.wins + wins}-{current.losses + rounds_to_play - wins}",
            binomial_probability(rounds_to_play, wins),
        )
        for wins in range(rounds_to_play + 1)
    ]


def _is_active_record(record: str) -> bool:
    wins, losses = parse_group(record)
    return wins < WINS_TO_QUALIFY and losses < LOSSES_TO_ELIMINATE


def calculate_same_group_meeting_probability(team_a: str, team_b: str, teams: Sequence[Team],
                                             matches: Sequence[Match], round_num: int,
                                             group_record: str) -> float:
    """
    Chance that two teams sharing ``group_record`` are drawn together,
    approximated as 1 / (group size - 1) with a uniformly random pairing. The
    group size counts both teams plus each other active team's probability
    of reaching the same record.
    """
    if not _is_active_record(group_record):
        return 0.0

    group_size = 2.0
    for team in teams:
        if team.name in (team_a, team_b):
            continue
        if not get_team_status(get_team_record(team.name, matches)).is_active:
            continue
        group_size += sum(
            r.probability for r in get_possible_records(team.name, teams, matches, round_num)
            if r.record == group_record
        )
    return 1.0 / (group_size - 1)


def calculate_meeting_probability(team_a: str, team_b: str, teams: Sequence[Team], matches: Sequence[Match],
                                  target_round: int) -> float:
    for name in (team_a, team_b):
        find_team(name, teams)
    if team_a == team_b:
        raise SwissError(f"{team_a} cannot meet itself")
    if not 1 <= target_round <= MAX_ROUNDS:
        return 0.0
    # A pairing drawn for an earlier round, decided or not, rules out a rematch
    earlier = [m for m in matches if m.round_num < target_round]
    if team_b in get_played_opponents(team_a, earlier):
        return 0.0

    history = decided_matches(matches, before_round=target_round)
    if not can_teams_meet(team_a, team_b, teams, history, target_round):
        return 0.0

    records_b = {r.record: r.probability for r in get_possible_records(team_b, teams, history, target_round)}
    total = 0.0
    for scenario in get_possible_records(team_a, teams, history, target_round):
        probability_b = records_b.get(scenario.record, 0.0)
        if probability_b == 0.0:
            continue
        same_group = calculate_same_group_meeting_probability(
            team_a, team_b, teams, history, target_round, scenario.record
        )
        total += scenario.probability * probability_b * same_group

    return min(total, 1.0)
