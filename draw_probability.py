"""draw_probability.py

Show who a team can draw in the next Swiss round and how likely each
opponent is, or how likely two teams are to meet.

Usage example:
    python3 draw_probability.py tournament.json "Team A"
    python3 draw_probability.py tournament.json "Team A" --against "Team B" 5000 --seed 3

The next round is worked out from the decided matches. Round 1 depends on
seeding and cannot be drawn.
"""

import sys

from swiss_utils import (
    create_base_parser,
    add_tournament_args,
    add_simulations_arg,
    add_common_args,
    setup_logging,
    load_tournament_file,
)

from swiss_config import FINISHED_ROUND, MonteCarloValidation, make_rng
from swiss_logic import SwissError, get_team_record
from draw_simulation import (
    calculate_meeting_probability,
    calculate_opponent_probabilities_monte_carlo,
    get_next_draw_round,
    validate_draw_state,
)
from mathematical_probability import (
    calculate_meeting_probability as calculate_meeting_probability_exact,
    calculate_opponent_probabilities,
)


def main():
    parser = create_base_parser("Compute next-round opponent probabilities for a Swiss stage team.")
    add_tournament_args(parser)
    parser.add_argument("team", type=str, help="Team to analyse")
    add_simulations_arg(parser, default=1000)
    parser.add_argument("--against", type=str, help="Second team: report the meeting probability only")
    parser.add_argument("--round", type=int, help="Round to draw (default: next round to be drawn)")
    parser.add_argument("--validate", action="store_true",
                        help="Log a Monte Carlo cross-check of the closed-form distribution")
    add_common_args(parser)

    args = parser.parse_args()
    setup_logging(args)

    teams, matches = load_tournament_file(args.tournament)
    rng = make_rng(args.seed)
    validation = MonteCarloValidation.from_env()
    if args.validate:
        validation = MonteCarloValidation(enabled=True, simulations=args.simulations)

    draw_state = validate_draw_state(teams, matches)
    if not draw_state.is_valid:
        print(f"Error: {draw_state.error}")
        sys.exit(1)

    round_num = args.round or get_next_draw_round(teams, matches)
    if round_num >= FINISHED_ROUND:
        print("The Swiss stage is finished, there is nothing left to draw.")
        sys.exit(0)
    if round_num == 1:
        print("Error: the round 1 draw depends on seeding and is not supported.")
        sys.exit(1)

    record = get_team_record(args.team, matches).record
    print(f"{args.team} ({record}), Round {round_num}")
    print()

    try:
        if args.against:
            sampled = calculate_meeting_probability(
                args.team, args.against, teams, matches, round_num, args.simulations, rng
            )
            exact = calculate_meeting_probability_exact(args.team, args.against, teams, matches, round_num)
            print(f"Meeting probability {args.team} vs {args.against}")
            print(f"  Monte Carlo ({args.simulations} draws): {sampled:.2%}")
            print(f"  Closed form:              {exact:.2%}")
            return

        closed_form = calculate_opponent_probabilities(
            args.team, teams, matches, round_num,
            validation=validation,
            rng=rng,
        )
        sampled = {
            p.opponent: p.probability
            for p in calculate_opponent_probabilities_monte_carlo(
                args.team, teams, matches, round_num, args.simulations, rng
            )
        }
    except SwissError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if not closed_form:
        print("No opponent distribution can be determined.")
        return

    print("Opponent             | Closed form | Monte Carlo")
    print("---------------------|-------------|------------")
    for p in closed_form:
        print(f"{p.opponent:<20} | {p.probability:>10.2%} | {sampled.get(p.opponent, 0.0):>10.2%}")


if __name__ == "__main__":
    main()
