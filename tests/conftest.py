"""
Shared fixtures: a 16-team field and deterministic round histories.

After round one, Team 1-8 are 1-0 (each beat Team n+8) and Team 9-16 are 0-1.
After round two the stage looks like:
    2-0: Team 1, 3, 5, 7
    1-1: Team 2, 4, 6, 8, 9, 11, 13, 15
    0-2: Team 10, 12, 14, 16
"""

import random

import pytest

from swiss_logic import Match, Team

REGIONS = ["CN", "KR", "EU", "NA"]


def decided(round_num, team_a, team_b, group, winner=None):
    """A finished match; team_a wins unless ``winner`` says otherwise."""
    return Match(round_num=round_num, team_a=team_a, team_b=team_b, group=group, winner=winner or team_a)


def round_one():
    return [decided(1, f"Team {i}", f"Team {i + 8}", "0-0") for i in range(1, 9)]


def round_two():
    winners = [decided(2, f"Team {i}", f"Team {i + 1}", "1-0") for i in (1, 3, 5, 7)]
    losers = [decided(2, f"Team {i}", f"Team {i + 1}", "0-1") for i in (9, 11, 13, 15)]
    return winners + losers


@pytest.fixture
def teams():
    return [Team(name=f"Team {i + 1}", region=REGIONS[i % 4]) for i in range(16)]


@pytest.fixture
def after_round_one():
    return round_one()


@pytest.fixture
def after_round_two():
    return round_one() + round_two()


@pytest.fixture
def rng():
    return random.Random(20240917)


def payload(teams, matches, **extra):
    """JSON body for the API."""
    body = {"teams": [t.to_dict() for t in teams], "matches": [m.to_dict() for m in matches]}
    body.update(extra)
    return body
