import pytest

from swiss_config import BO1, BO3, TBD
from swiss_logic import (
    ACTIVE,
    ELIMINATED,
    QUALIFIED,
    Match,
    SwissError,
    Team,
    TeamRecord,
    find_team,
    generate_possible_matches,
    get_current_round,
    get_match_format,
    get_played_opponents,
    get_possible_opponents,
    get_team_record,
    get_team_status,
    group_teams_by_record,
    is_valid_matchup,
    parse_group,
)
from conftest import decided


class TestTeam:
    def test_zone_defaults_to_region(self):
        assert Team("Alpha", region="EU").zone == "EU"

    def test_explicit_zone_is_kept(self):
        assert Team("Alpha", region="EU", zone="EMEA").zone == "EMEA"

    def test_empty_name_rejected(self):
        with pytest.raises(SwissError):
            Team("")

    def test_from_dict(self):
        team = Team.from_dict({"name": "Alpha", "region": "KR"})
        assert team == Team("Alpha", "KR", "KR")


class TestMatch:
    def test_from_dict_derives_format(self):
        match = Match.from_dict({"round": 3, "group": "2-0", "teamA": "A", "teamB": "B"})
        assert match.format == BO3
        assert match.winner is None

    def test_from_dict_empty_winner_is_pending(self):
        match = Match.from_dict({"round": 2, "group": "1-0", "teamA": "A", "teamB": "B", "winner": ""})
        assert not match.is_decided

    def test_to_dict_uses_wire_names(self):
        data = Match(2, "A", "B", "1-0", "A").to_dict()
        assert data == {"round": 2, "group": "1-0", "teamA": "A", "teamB": "B", "winner": "A", "format": BO1}

    def test_with_winner_returns_new_match(self):
        pending = Match(2, "A", "B", "1-0")
        finished = pending.with_winner("B")
        assert finished.winner == "B"
        assert pending.winner is None

    def test_with_winner_rejects_outsider(self):
        with pytest.raises(SwissError):
            Match(2, "A", "B").with_winner("C")

    def test_opponent_of(self):
        match = Match(1, "A", "B")
        assert match.opponent_of("A") == "B"
        assert match.opponent_of("B") == "A"
        assert match.opponent_of("C") is None


class TestTeamRecord:
    def test_counts_decided_matches(self, after_round_two):
        assert get_team_record("Team 1", after_round_two) == TeamRecord(2, 0)
        assert get_team_record("Team 2", after_round_two) == TeamRecord(1, 1)
        assert get_team_record("Team 10", after_round_two) == TeamRecord(0, 2)

    def test_pending_and_tbd_matches_ignored(self):
        matches = [
            Match(1, "A", "B"),
            Match(1, "A", TBD, winner="A"),
            decided(1, "C", "A", "0-0"),
        ]
        assert get_team_record("A", matches) == TeamRecord(0, 1)

    def test_record_string(self):
        assert TeamRecord(2, 1).record == "2-1"
        assert TeamRecord(2, 1).games_played == 3


class TestTeamStatus:
    @pytest.mark.parametrize("wins,losses,expected", [
        (3, 0, QUALIFIED),
        (3, 2, QUALIFIED),
        (0, 3, ELIMINATED),
        (2, 3, ELIMINATED),
        (2, 2, ACTIVE),
        (0, 0, ACTIVE),
    ])
    def test_thresholds(self, wins, losses, expected):
        assert get_team_status(TeamRecord(wins, losses)).status == expected

    def test_reason_names_the_record(self):
        assert get_team_status(TeamRecord(3, 1)).reason == "3-1 qualified"
        assert get_team_status(TeamRecord(1, 3)).reason == "1-3 eliminated"

    def test_statuses_are_exclusive(self):
        for wins in range(4):
            for losses in range(4):
                if wins + losses > 5 or (wins == 3 and losses == 3):
                    continue
                status = get_team_status(TeamRecord(wins, losses))
                assert status.is_active == (wins < 3 and losses < 3)


class TestPlayedOpponents:
    def test_rematch_counted_once(self):
        matches = [decided(1, "A", "B", "0-0"), decided(2, "B", "A", "1-0")]
        assert get_played_opponents("A", matches) == {"B"}

    def test_pending_match_counts_as_played(self):
        assert get_played_opponents("A", [Match(2, "A", "C")]) == {"C"}

    def test_tbd_excluded(self):
        assert get_played_opponents("A", [Match(2, "A", TBD)]) == set()


class TestGrouping:
    def test_no_matches_single_group(self, teams):
        groups = group_teams_by_record(teams, [])
        assert list(groups) == ["0-0"]
        assert len(groups["0-0"]) == 16

    def test_groups_after_round_two(self, teams, after_round_two):
        groups = group_teams_by_record(teams, after_round_two)
        assert {g: len(s) for g, s in groups.items()} == {"2-0": 4, "1-1": 8, "0-2": 4}
        assert groups["2-0"][0].name == "Team 1"

    def test_parse_group(self):
        assert parse_group("2-1") == (2, 1)
        with pytest.raises(SwissError):
            parse_group("two-one")

    def test_get_current_round(self, after_round_two):
        assert get_current_round(after_round_two) == 2
        assert get_current_round([]) == 0

    def test_find_team_unknown(self, teams):
        with pytest.raises(SwissError):
            find_team("Nobody", teams)


class TestMatchFormat:
    @pytest.mark.parametrize("round_num,group,expected", [
        (1, "0-0", BO1),
        (2, "1-0", BO1),
        (3, "2-0", BO3),
        (3, "0-2", BO3),
        (3, "1-1", BO1),
        (4, "2-1", BO3),
        (5, "2-2", BO3),
    ])
    def test_format(self, round_num, group, expected):
        assert get_match_format(round_num, group) == expected


class TestPossibleMatches:
    def test_round_two_pairings(self, teams, after_round_one):
        possible = generate_possible_matches(teams, after_round_one, 2)
        # C(8, 2) in each of the two groups
        assert len(possible) == 56
        for match in possible:
            assert get_team_record(match.team_a, after_round_one).record == match.group
            assert get_team_record(match.team_b, after_round_one).record == match.group
            assert match.team_b not in get_played_opponents(match.team_a, after_round_one)

    def test_round_three_formats(self, teams, after_round_two):
        possible = generate_possible_matches(teams, after_round_two, 3)
        formats = {m.group: m.format for m in possible}
        assert formats == {"2-0": BO3, "1-1": BO1, "0-2": BO3}

    def test_possible_opponents(self, teams, after_round_two):
        opponents = get_possible_opponents("Team 1", "2-0", teams, after_round_two, 3)
        assert {s.name for s in opponents} == {"Team 3", "Team 5", "Team 7"}

    def test_possible_opponents_skip_played(self, teams, after_round_one):
        opponents = get_possible_opponents("Team 9", "1-0", teams, after_round_one, 2)
        assert "Team 1" not in {s.name for s in opponents}
        assert len(opponents) == 7

    def test_valid_matchup(self, after_round_one):
        assert is_valid_matchup("Team 1", "Team 2", after_round_one)
        assert not is_valid_matchup("Team 1", "Team 9", after_round_one)
        assert not is_valid_matchup("Team 1", "Team 2", after_round_one, [Match(2, "Team 1", "Team 3")])
