import os
import logging
from flask import Flask, request, jsonify
from flask_cors import CORS

import swiss_utils
from swiss_config import MonteCarloValidation, make_rng
from swiss_logic import Match, SwissError
import draw_simulation
import mathematical_probability
import probability_calculator

app = Flask(__name__)
# Enable CORS for all API routes, the UI is served from another origin
CORS(app, resources={r"/api/*": {"origins": "*"}})

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Read once at startup and passed explicitly to the estimators
VALIDATION = MonteCarloValidation.from_env()

MAX_SIMULATIONS = int(os.environ.get('MAX_SIMULATIONS', 50000))


def _read_request():
    """Parse teams, matches and the random source from the JSON body."""
    req_data = request.get_json(silent=True)
    if not isinstance(req_data, dict):
        raise SwissError("Request body must be a JSON object")
    if not req_data.get('teams'):
        raise SwissError("Missing teams")
    try:
        teams, matches = swiss_utils.parse_tournament(req_data)
    except KeyError as e:
        raise SwissError(f"Missing field {e}")
    rng = make_rng(req_data.get('seed'))
    return req_data, teams, matches, rng


def _simulations(req_data, default):
    simulations = int(req_data.get('simulations', default))
    if not 1 <= simulations <= MAX_SIMULATIONS:
        raise SwissError(f"simulations must be between 1 and {MAX_SIMULATIONS}")
    return simulations


def _handle(view):
    """Run a view, mapping input errors to 400 and anything else to 500."""
    try:
        return view()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception(f"Error in {request.path}: {e}")
        return jsonify({"error": str(e)}), 500


@app.route('/api/health', methods=['GET'])
def health_check():
    return jsonify({"status": "ok"}), 200


@app.route('/api/draw/validate', methods=['POST'])
def validate_draw():
    """Report whether the next round can be drawn."""
    def view():
        _, teams, matches, _ = _read_request()
        result = draw_simulation.validate_draw_state(teams, matches)
        data = result.to_dict()
        data['nextRound'] = draw_simulation.get_next_draw_round(teams, matches)
        return jsonify(data), 200
    return _handle(view)


@app.route('/api/draw/simulate', methods=['POST'])
def simulate_draw():
    """Simulate one draw of the requested (or next) round."""
    def view():
        req_data, teams, matches, rng = _read_request()

        state = draw_simulation.validate_draw_state(teams, matches)
        if not state.is_valid:
            return jsonify(state.to_dict()), 409

        round_num = req_data.get('round') or draw_simulation.get_next_draw_round(teams, matches)
        result = draw_simulation.simulate_draw_for_round(teams, matches, int(round_num), rng=rng)
        return jsonify({"round": round_num, "matches": [m.to_dict() for m in result.matches]}), 200
    return _handle(view)


@app.route('/api/probabilities/qualification', methods=['POST'])
def qualification_probabilities():
    """Monte Carlo qualification report, optionally under hypothetical results."""
    def view():
        req_data, teams, matches, rng = _read_request()
        simulations = _simulations(req_data, 10000)
        win_probabilities = req_data.get('win_probabilities') or {}
        if not isinstance(win_probabilities, dict):
            raise SwissError("win_probabilities must be a JSON object")
        try:
            hypothetical = [Match.from_dict(m) for m in req_data.get('hypothetical_matches', [])]
        except KeyError as e:
            raise SwissError(f"Missing field {e} in hypothetical_matches")

        if hypothetical:
            report = probability_calculator.calculate_conditional_probabilities(
                teams, matches, hypothetical, simulations, win_probabilities, rng
            )
        else:
            report = probability_calculator.calculate_qualification_probabilities(
                teams, matches, simulations, win_probabilities, rng
            )
        return jsonify(report.to_dict()), 200
    return _handle(view)


@app.route('/api/probabilities/closed-form', methods=['POST'])
def closed_form_probabilities():
    """Binomial qualification and elimination probabilities for every team."""
    def view():
        _, teams, matches, _ = _read_request()
        results = {}
        for team in teams:
            qualification = mathematical_probability.calculate_qualification_probability(team.name, teams, matches)
            elimination = mathematical_probability.calculate_elimination_probability(team.name, teams, matches)
            results[team.name] = {
                **qualification.to_dict(),
                "eliminationProbability": elimination.probability,
                "possibleFinalRecords": probability_calculator.get_possible_final_records(team.name, teams, matches),
            }
        return jsonify({"teams": results}), 200
    return _handle(view)


@app.route('/api/probabilities/opponents', methods=['POST'])
def opponent_probabilities():
    """Closed-form opponent distribution for one team, optionally after a hypothetical outcome."""
    def view():
        req_data, teams, matches, rng = _read_request()
        team = req_data.get('team')
        if not team:
            return jsonify({"error": "Missing team"}), 400

        outcome = req_data.get('outcome')
        if outcome:
            if req_data.get('current_round') is None:
                return jsonify({"error": "Missing current_round for outcome"}), 400
            current_round = int(req_data['current_round'])
            target_round = int(req_data.get('round') or current_round + 1)
            probabilities = mathematical_probability.calculate_team_draw_probabilities(
                team, teams, matches, current_round, target_round, outcome
            )
        else:
            target_round = int(req_data.get('round') or draw_simulation.get_next_draw_round(teams, matches))
            probabilities = mathematical_probability.calculate_opponent_probabilities(
                team, teams, matches, target_round, validation=VALIDATION, rng=rng
            )
        return jsonify({
            "team": team,
            "round": target_round,
            "opponents": [p.to_dict() for p in probabilities],
        }), 200
    return _handle(view)


@app.route('/api/probabilities/meeting', methods=['POST'])
def meeting_probability():
    """Probability that two teams meet in a round, by sampling or in closed form."""
    def view():
        req_data, teams, matches, rng = _read_request()
        team_a = req_data.get('teamA')
        team_b = req_data.get('teamB')
        if not team_a or not team_b:
            return jsonify({"error": "Missing teamA or teamB"}), 400

        round_num = int(req_data.get('round') or draw_simulation.get_next_draw_round(teams, matches))
        method = req_data.get('method', 'closed_form')
        if method == 'monte_carlo':
            probability = draw_simulation.calculate_meeting_probability(
                team_a, team_b, teams, matches, round_num, _simulations(req_data, 1000), rng
            )
        elif method == 'closed_form':
            probability = mathematical_probability.calculate_meeting_probability(
                team_a, team_b, teams, matches, round_num
            )
        else:
            return jsonify({"error": f"Unknown method {method}"}), 400
        return jsonify({"teamA": team_a, "teamB": team_b, "round": round_num,
                        "method": method, "probability": probability}), 200
    return _handle(view)


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 8080)))
