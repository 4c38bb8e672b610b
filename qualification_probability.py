"""qualification_probability.py

Estimate every team's probability of qualifying (3 wins) or being eliminated
(3 losses) from the current state of a 16-team Swiss stage.

Usage example:
    python3 qualification_probability.py tournament.json 10000 --seed 7
    python3 qualification_probability.py tournament.json --assume "Team A>Team B" --round 3

The Monte Carlo estimate plays out the rest of the stage; the closed-form
column assumes independent 50/50 matches. With default win probabilities the
two columns should agree within a few percentage points.
"""

import json
import sys

from swiss_utils import (
    create_base_parser,
    add_tournament_args,
    add_simulations_arg,
    add_common_args,
    setup_logging,
    load_tournament_file,
    print_simulation_header,
    print_progress,
)

from swiss_config import make_rng
from swiss_logic import Match, SwissError, get_team_record
from probability_calculator import (
    calculate_conditional_probabilities,
    calculate_qualification_probabilities,
    get_possible_final_records,
)
from mathematical_probability import calculate_qualification_probability


def parse_assumption(text, round_num):
    """Parse 'Winner>Loser' into a decided match for ``round_num``."""
    if ">" not in text:
        raise SwissError(f"Assumption {text!r} must look like 'Winner>Loser'")
    winner, loser = (part.strip() for part in text.split(">", 1))
    return Match(round_num=round_num, team_a=winner, team_b=loser, winner=winner)


def main():
    parser = create_base_parser(
        "Compute qualification and elimination probabilities for a Swiss stage."
    )
    add_tournament_args(parser)
    add_simulations_arg(parser)
    parser.add_argument("--win-probabilities", type=str,
                        help="JSON file mapping 'teamA_vs_teamB' to teamA's win probability")
    parser.add_argument("--assume", type=str, nargs='+', default=[],
                        help="Hypothetical results as 'Winner>Loser' (requires --round)")
    parser.add_argument("--round", type=int, help="Round the hypothetical results belong to")
    add_common_args(parser)

    args = parser.parse_args()
    setup_logging(args)

    teams, matches = load_tournament_file(args.tournament)
    NUM_SIMULATIONS = args.simulations

    win_probabilities = {}
    if args.win_probabilities:
        with open(args.win_probabilities, 'r') as f:
            win_probabilities = json.load(f)

    if args.assume and not args.round:
        print("Error: --assume requires --round")
        sys.exit(1)

    rng = make_rng(args.seed)
    print_simulation_header(len(teams), len(matches), NUM_SIMULATIONS, args.seed,
                            f"Assuming: {', '.join(args.assume)}" if args.assume else "")

    try:
        if args.assume:
            hypothetical = [parse_assumption(a, args.round) for a in args.assume]
            report = calculate_conditional_probabilities(
                teams, matches, hypothetical, NUM_SIMULATIONS, win_probabilities, rng, print_progress
            )
            matches = matches + hypothetical
        else:
            report = calculate_qualification_probabilities(
                teams, matches, NUM_SIMULATIONS, win_probabilities, rng, print_progress
            )
    except SwissError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Completed {NUM_SIMULATIONS} simulations...\n")

    print(f"{'Team':<20} {'Record':<7} {'Qualify %':>9} {'Elim %':>7} {'Exact %':>8}  Possible finishes")
    print("-" * 80)
    for team in teams:
        result = report[team.name]
        record = get_team_record(team.name, matches).record
        exact = calculate_qualification_probability(team.name, teams, matches).probability * 100
        finishes = " ".join(get_possible_final_records(team.name, teams, matches))
        print(f"{team.name:<20} {record:<7} {result.qualification_probability:>9.1f} "
              f"{result.elimination_probability:>7.1f} {exact:>8.1f}  {finishes}")


if __name__ == "__main__":
    main()
