"""
Common utilities and argument parsing for the Swiss stage probability scripts.
"""

import argparse
import json
import logging
import os
import sys

from swiss_config import configure_logging
from swiss_logic import Match, SwissError, Team


def create_base_parser(description):
    """Create a base argument parser with common arguments."""
    parser = argparse.ArgumentParser(description=description)
    return parser


def add_common_args(parser):
    """Add common arguments to a parser."""
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the random source (default: unseeded)")
    parser.add_argument("--log-level", type=str, default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level (default: WARNING)")
    return parser


def add_tournament_args(parser):
    """Add tournament input arguments."""
    parser.add_argument("tournament", type=str,
                        help="JSON file with 'teams' and 'matches' lists")
    return parser


def add_simulations_arg(parser, default=10000):
    """Add simulations argument."""
    parser.add_argument("simulations", type=int, nargs='?', default=default,
                        help=f"Number of simulations to run (default: {default})")
    return parser


def setup_logging(args):
    configure_logging(getattr(logging, args.log_level))


def parse_tournament(data):
    """Build Team and Match lists from the JSON form used by the scripts and the API."""
    teams = [Team.from_dict(t) for t in data.get("teams", [])]
    matches = [Match.from_dict(m) for m in data.get("matches", [])]
    return teams, matches


def load_tournament_file(path):
    """Load teams and matches from a tournament JSON file."""
    if not os.path.exists(path):
        print(f"Error: {path} not found.")
        sys.exit(1)

    with open(path, 'r') as f:
        data = json.load(f)

    try:
        return parse_tournament(data)
    except (KeyError, SwissError) as e:
        print(f"Error: invalid tournament file {path}: {e}")
        sys.exit(1)


def print_simulation_header(num_teams, num_matches, num_simulations, seed, extra_info=""):
    """Print standard simulation header."""
    print(f"Simulating {num_simulations} Swiss stages with {num_teams} teams, {num_matches} matches recorded...")
    if extra_info:
        print(extra_info)
    print(f"Seed: {seed if seed is not None else 'unseeded'}")
    print()


def print_progress(current, total, interval=1000):
    """Print simulation progress."""
    if (current + 1) % interval == 0:
        print(f"Completed {current + 1} simulations...", end='\r')
