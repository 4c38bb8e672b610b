"""
Round draw simulation and Monte Carlo meeting estimates.

Rounds 2-5 are drawn inside each record group: the group is shuffled, then
every team in turn takes a random opponent it has not played yet. Round 1
depends on seeding pools that are not modelled and is refused outright.
"""

import logging
import random
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from swiss_config import FINISHED_ROUND, MATCHES_PER_ROUND, MAX_ROUNDS, TBD
from swiss_logic import (
    Match,
    OpponentProbability,
    SwissError,
    Team,
    decided_matches,
    find_team,
    get_match_format,
    get_played_opponents,
    group_teams_by_record,
)

logger = logging.getLogger(__name__)


class DrawError(SwissError):
    """Raised when a round cannot be drawn."""


class UnsupportedDrawError(DrawError):
    pass


@dataclass(frozen=True)
class DrawValidation:
    is_valid: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"isValid": self.is_valid}
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class DrawResult:
    matches: List[Match] = field(default_factory=list)

    def find_match(self, team: str) -> Optional[Match]:
        return next((m for m in self.matches if m.involves(team)), None)

    def has_pair(self, team_a: str, team_b: str) -> bool:
        return any({m.team_a, m.team_b} == {team_a, team_b} for m in self.matches)


def get_expected_matches_for_round(round_num: int) -> int:
    # 16 teams give 8 pairings in every round
    return MATCHES_PER_ROUND


def get_next_draw_round(teams: Sequence[Team], matches: Iterable[Match]) -> int:
    """First round with fewer decided matches than expected, or 6 when the stage is over."""
    completed = defaultdict(int)
    for match in decided_matches(matches):
        completed[match.round_num] += 1

    for round_num in range(1, MAX_ROUNDS + 1):
        if completed[round_num] < get_expected_matches_for_round(round_num):
            return round_num
    return FINISHED_ROUND


def validate_draw_state(teams: Sequence[Team], matches: Sequence[Match]) -> DrawValidation:
    next_round = get_next_draw_round(teams, matches)

    for match in matches:
        if match.round_num >= next_round:
            continue
        if not match.winner or match.team_a == TBD or match.team_b == TBD:
            return DrawValidation(
                is_valid=False,
                error=f"Round {match.round_num} has undecided matches, cannot simulate the draw",
            )
    return DrawValidation(is_valid=True)


def simulate_first_round_draw(teams: Sequence[Team]) -> List[Match]:
    raise UnsupportedDrawError("Round 1 draw is not supported: first-round seeding unsupported")


def simulate_round_draw(teams: Sequence[Team], previous_matches: Sequence[Match], round_num: int,
                        rng: Optional[random.Random] = None) -> List[Match]:
    """
    Draw one round. Each record group is paired independently; a team whose
    remaining candidates have all been played gets a forced rematch rather
    than being left out.
    """
    rng = rng or random.Random()
    matches = []

    for group, standings in group_teams_by_record(teams, previous_matches).items():
        pool = [s.name for s in standings if s.status.is_active]
        if len(pool) < 2:
            continue

        played = {name: get_played_opponents(name, previous_matches) for name in pool}
        rng.shuffle(pool)

        while len(pool) >= 2:
            team_a = pool.pop(0)
            candidates = [i for i, name in enumerate(pool) if name not in played[team_a]]
            if candidates:
                index = rng.choice(candidates)
            else:
                index = rng.randrange(len(pool))
                logger.debug("R%d %s: forced rematch %s vs %s", round_num, group, team_a, pool[index])
            team_b = pool.pop(index)
            matches.append(Match(
                round_num=round_num,
                team_a=team_a,
                team_b=team_b,
                group=group,
                format=get_match_format(round_num, group),
            ))

        if pool:
            logger.debug("R%d %s: %s left unpaired (odd group)", round_num, group, pool[0])

    return matches


def simulate_draw_for_round(teams: Sequence[Team], all_matches: Iterable[Match], target_round: int,
                            rng: Optional[random.Random] = None) -> DrawResult:
    if not 1 <= target_round <= MAX_ROUNDS:
        raise DrawError(f"Round {target_round} is outside the Swiss stage (1-{MAX_ROUNDS})")
    valid_matches = decided_matches(all_matches, before_round=target_round)

    if target_round == 1:
        matches = simulate_first_round_draw(teams)
    else:
        matches = simulate_round_draw(teams, valid_matches, target_round, rng=rng)
    return DrawResult(matches=matches)


def _check_simulation_args(teams: Sequence[Team], names: Sequence[str], round_num: int, simulations: int):
    for name in names:
        find_team(name, teams)
    if len(set(names)) != len(names):
        raise DrawError("A team cannot meet itself")
    if simulations < 1:
        raise DrawError("simulations must be at least 1")
    if round_num == 1:
        raise UnsupportedDrawError("Round 1 draw is not supported: first-round seeding unsupported")
    if not 1 < round_num <= MAX_ROUNDS:
        raise DrawError(f"Round {round_num} is outside the Swiss stage (2-{MAX_ROUNDS})")


def calculate_meeting_probability(team_a: str, team_b: str, teams: Sequence[Team], matches: Sequence[Match],
                                  round_num: int, simulations: int = 1000,
                                  rng: Optional[random.Random] = None) -> float:
    """Fraction of simulated draws for ``round_num`` that pair team_a with team_b."""
    _check_simulation_args(teams, (team_a, team_b), round_num, simulations)
    rng = rng or random.Random()

    meetings = 0
    for _ in range(simulations):
        draw = simulate_draw_for_round(teams, matches, round_num, rng=rng)
        if draw.has_pair(team_a, team_b):
            meetings += 1

    return meetings / simulations


def calculate_opponent_probabilities_monte_carlo(team: str, teams: Sequence[Team], matches: Sequence[Match],
                                                 round_num: int, simulations: int = 1000,
                                                 rng: Optional[random.Random] = None) -> List[OpponentProbability]:
    """Opponent distribution for ``team`` measured over simulated draws."""
    _check_simulation_args(teams, (team,), round_num, simulations)
    rng = rng or random.Random()

    counts: Dict[str, int] = defaultdict(int)
    for _ in range(simulations):
        match = simulate_draw_for_round(teams, matches, round_num, rng=rng).find_match(team)
        if match:
            counts[match.opponent_of(team)] += 1

    probabilities = [
        OpponentProbability(opponent=name, probability=count / simulations)
        for name, count in counts.items()
    ]
    probabilities.sort(key=lambda p: p.probability, reverse=True)
    return probabilities
