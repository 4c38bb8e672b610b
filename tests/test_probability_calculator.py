import random

import pytest

from swiss_logic import Match, SwissError, Team
from probability_calculator import (
    SimulationError,
    build_starting_records,
    calculate_conditional_probabilities,
    calculate_qualification_probabilities,
    generate_round_matches,
    get_possible_final_records,
    get_win_probability,
    simulate_match_result,
)
from conftest import decided, round_one, round_two


def _round_two_with_team_one_pending():
    matches = round_one() + round_two()
    matches[8] = Match(2, "Team 1", "Team 2", "1-0")
    return matches


class TestWinProbability:
    def test_default_is_even(self):
        assert get_win_probability("A", "B", {}) == 0.5

    def test_direct_and_mirrored_keys(self):
        probabilities = {"A_vs_B": 0.8}
        assert get_win_probability("A", "B", probabilities) == 0.8
        assert get_win_probability("B", "A", probabilities) == pytest.approx(0.2)

    def test_certain_results(self, rng):
        assert all(simulate_match_result("A", "B", {"A_vs_B": 1.0}, rng) == "A" for _ in range(50))
        assert all(simulate_match_result("A", "B", {"A_vs_B": 0.0}, rng) == "B" for _ in range(50))


class TestRoundGeneration:
    def test_pairs_inside_record_groups(self, teams, after_round_one, rng):
        records = build_starting_records(teams, after_round_one)
        round_matches = generate_round_matches(records, 2, rng)
        assert len(round_matches) == 8
        for match in round_matches:
            assert records[match.team_a].record == records[match.team_b].record == match.group

    def test_teams_that_played_the_round_sit_out(self, teams, after_round_one, rng):
        records = build_starting_records(teams, after_round_one)
        assert generate_round_matches(records, 1, rng) == []


class TestQualificationProbabilities:
    def test_fresh_stage(self, teams, rng):
        report = calculate_qualification_probabilities(teams, [], simulations=2000, rng=rng)
        assert report.simulations == 2000
        # A full stage always sends exactly 8 teams through
        assert sum(report[t.name].qualified for t in teams) == 8 * 2000
        assert sum(report[t.name].eliminated for t in teams) == 8 * 2000
        for team in teams:
            result = report[team.name]
            assert result.qualified + result.eliminated == 2000
            assert 40.0 < result.qualification_probability < 60.0
            assert set(result.final_records) <= set(get_possible_final_records(team.name, teams, []))

    def test_percentages_rounded_to_one_decimal(self, teams, after_round_one, rng):
        report = calculate_qualification_probabilities(teams, after_round_one, simulations=300, rng=rng)
        for result in report.teams.values():
            assert result.qualification_probability == round(result.qualification_probability, 1)
            assert sum(result.final_record_probabilities.values()) == pytest.approx(100.0, abs=0.5)

    def test_matches_binomial_after_round_one(self, teams, after_round_one):
        report = calculate_qualification_probabilities(
            teams, after_round_one, simulations=10000, rng=random.Random(1)
        )
        assert report["Team 1"].qualification_probability == pytest.approx(68.75, abs=3.0)
        assert report["Team 9"].qualification_probability == pytest.approx(31.25, abs=3.0)

    def test_qualified_team_stays_qualified(self, rng):
        teams = [Team("A"), Team("B"), Team("C"), Team("D")]
        matches = [decided(1, "A", "B", "0-0"), decided(2, "A", "C", "1-0"), decided(3, "A", "D", "2-0")]
        report = calculate_qualification_probabilities(teams, matches, simulations=200, rng=rng)
        assert report["A"].qualification_probability == 100.0
        assert report["A"].final_record_probabilities == {"3-0": 100.0}

    def test_win_probabilities_respected(self, teams, rng):
        favourite = {f"Team 1_vs_Team {i}": 1.0 for i in range(2, 17)}
        underdog = {f"Team {i}_vs_Team 16": 1.0 for i in range(2, 16)}
        report = calculate_qualification_probabilities(teams, [], simulations=100,
                                                       win_probabilities={**favourite, **underdog}, rng=rng)
        assert report["Team 1"].final_record_probabilities == {"3-0": 100.0}
        assert report["Team 16"].final_record_probabilities == {"0-3": 100.0}

    def test_same_seed_same_report(self, teams, after_round_one):
        first = calculate_qualification_probabilities(teams, after_round_one, 500, rng=random.Random(9))
        second = calculate_qualification_probabilities(teams, after_round_one, 500, rng=random.Random(9))
        assert first.to_dict() == second.to_dict()

    def test_progress_callback(self, teams, rng):
        calls = []
        calculate_qualification_probabilities(teams, [], 20, rng=rng,
                                              progress_callback=lambda i, n: calls.append((i, n)))
        assert calls[0] == (0, 20)
        assert len(calls) == 20

    def test_report_to_dict(self, teams, rng):
        data = calculate_qualification_probabilities(teams, [], 50, rng=rng).to_dict()
        assert data["simulations"] == 50
        assert set(data["teams"]["Team 1"]) == {
            "qualified", "eliminated", "qualificationProbability", "eliminationProbability", "finalRecords",
        }


class TestInvalidInput:
    def test_zero_simulations(self, teams):
        with pytest.raises(SimulationError):
            calculate_qualification_probabilities(teams, [], simulations=0)

    def test_probability_out_of_range(self, teams):
        with pytest.raises(SimulationError):
            calculate_qualification_probabilities(teams, [], 10, {"Team 1_vs_Team 2": 1.5})

    def test_non_numeric_probability(self, teams):
        with pytest.raises(SimulationError):
            calculate_qualification_probabilities(teams, [], 10, {"Team 1_vs_Team 2": "likely"})

    def test_numeric_strings_accepted(self, teams, rng):
        report = calculate_qualification_probabilities(teams, [], 10, {"Team 1_vs_Team 2": "0.7"}, rng=rng)
        assert report.simulations == 10

    def test_malformed_probability_key(self, teams):
        with pytest.raises(SimulationError):
            calculate_qualification_probabilities(teams, [], 10, {"Team 1 - Team 2": 0.5})

    def test_unknown_team_in_history(self, teams):
        with pytest.raises(SwissError):
            calculate_qualification_probabilities(teams, [decided(1, "Team 1", "Ghost", "0-0")], 10)

    def test_duplicate_team_names(self):
        with pytest.raises(SimulationError):
            calculate_qualification_probabilities([Team("A"), Team("A")], [], 10)

    def test_too_many_results(self):
        teams = [Team("A"), Team("B")]
        matches = [decided(r, "A", "B", "0-0", winner="A" if r % 2 else "B") for r in range(1, 7)]
        with pytest.raises(SimulationError):
            calculate_qualification_probabilities(teams, matches, 10)


class TestConditionalProbabilities:
    def test_assumed_result_shifts_odds(self, teams):
        matches = _round_two_with_team_one_pending()
        hypothetical = [Match(2, "Team 1", "Team 2", "1-0", winner="Team 1")]
        report = calculate_conditional_probabilities(teams, matches, hypothetical, 5000, rng=random.Random(3))
        # 2-0 needs one win from three, 1-1 needs two
        assert report["Team 1"].qualification_probability == pytest.approx(87.5, abs=3.0)
        assert report["Team 2"].qualification_probability == pytest.approx(50.0, abs=3.0)

    def test_inputs_not_modified(self, teams, rng):
        matches = _round_two_with_team_one_pending()
        before = list(matches)
        calculate_conditional_probabilities(teams, matches, [Match(2, "Team 1", "Team 2", "1-0", "Team 2")],
                                            50, rng=rng)
        assert matches == before


class TestPossibleFinalRecords:
    def test_fresh_team(self, teams):
        assert set(get_possible_final_records("Team 1", teams, [])) == {
            "3-0", "3-1", "3-2", "0-3", "1-3", "2-3",
        }

    def test_two_two(self, teams):
        matches = [
            decided(1, "Team 1", "Team 2", "0-0"),
            decided(2, "Team 1", "Team 3", "1-0"),
            decided(3, "Team 4", "Team 1", "2-0"),
            decided(4, "Team 5", "Team 1", "2-1"),
        ]
        assert set(get_possible_final_records("Team 1", teams, matches)) == {"3-2", "2-3"}

    def test_finished_team(self, teams, after_round_two):
        matches = after_round_two + [decided(3, "Team 1", "Team 3", "2-0")]
        assert get_possible_final_records("Team 1", teams, matches) == ["3-0"]
