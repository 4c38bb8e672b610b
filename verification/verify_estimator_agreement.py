import json
import subprocess
import os
import sys

TOURNAMENT_FILE = "verify_estimators.json"
EMPTY_FILE = "verify_estimators_empty.json"
TOLERANCE = 3.0  # percentage points

REGIONS = ["CN", "KR", "EU", "NA"]
teams = [{"name": f"Team {i + 1}", "region": REGIONS[i % 4]} for i in range(16)]


def match(round_num, group, team_a, team_b):
    return {"round": round_num, "group": group, "teamA": team_a, "teamB": team_b, "winner": team_a}


# Round 1: Team n beats Team n+8. Round 2: odd teams beat their neighbour in both groups.
matches = [match(1, "0-0", f"Team {i}", f"Team {i + 8}") for i in range(1, 9)]
matches += [match(2, "1-0", f"Team {i}", f"Team {i + 1}") for i in (1, 3, 5, 7)]
matches += [match(2, "0-1", f"Team {i}", f"Team {i + 1}") for i in (9, 11, 13, 15)]

failures = 0

try:
    with open(TOURNAMENT_FILE, "w") as f:
        json.dump({"teams": teams, "matches": matches}, f)
    with open(EMPTY_FILE, "w") as f:
        json.dump({"teams": teams, "matches": []}, f)

    print("--- Qualification: Monte Carlo vs closed form ---")
    result = subprocess.run(
        ["python3", "qualification_probability.py", TOURNAMENT_FILE, "20000", "--seed", "7"],
        capture_output=True, text=True, check=True,
    )
    names = {t["name"] for t in teams}
    rows = [line for line in result.stdout.splitlines() if line[:20].strip() in names]
    if len(rows) != 16:
        print(f"FAIL: Expected 16 team rows, got {len(rows)}")
        print("STDOUT:", result.stdout)
        sys.exit(1)

    for line in rows:
        name = line[:20].strip()
        record, qualify, _, exact = line[20:].split()[:4]
        difference = abs(float(qualify) - float(exact))
        if difference > TOLERANCE:
            print(f"FAIL: {name} ({record}) Monte Carlo {qualify}% vs closed form {exact}%")
            failures += 1
        else:
            print(f"PASS: {name} ({record}) {qualify}% vs {exact}%")

    print("\n--- Meeting probability in round 3 ---")
    for team_a, team_b in [("Team 1", "Team 3"), ("Team 2", "Team 9"), ("Team 10", "Team 12")]:
        result = subprocess.run(
            ["python3", "draw_probability.py", TOURNAMENT_FILE, team_a, "5000", "--against", team_b, "--seed", "3"],
            capture_output=True, text=True, check=True,
        )
        values = {}
        for line in result.stdout.splitlines():
            if line.strip().startswith("Monte Carlo"):
                values["sampled"] = float(line.rsplit(":", 1)[1].strip().rstrip("%"))
            elif line.strip().startswith("Closed form"):
                values["exact"] = float(line.rsplit(":", 1)[1].strip().rstrip("%"))

        if len(values) != 2:
            print(f"FAIL: Could not read meeting probabilities for {team_a} vs {team_b}")
            print("STDOUT:", result.stdout)
            sys.exit(1)
        if abs(values["sampled"] - values["exact"]) > TOLERANCE:
            print(f"FAIL: {team_a} vs {team_b} Monte Carlo {values['sampled']}% vs closed form {values['exact']}%")
            failures += 1
        else:
            print(f"PASS: {team_a} vs {team_b} {values['sampled']}% vs {values['exact']}%")

    print("\n--- Round 1 draw is refused ---")
    result = subprocess.run(
        ["python3", "draw_probability.py", EMPTY_FILE, "Team 1"],
        capture_output=True, text=True,
    )
    if result.returncode == 0 or "seeding" not in result.stdout:
        print("FAIL: Round 1 draw should be refused")
        print("STDOUT:", result.stdout)
        failures += 1
    else:
        print("PASS: Round 1 draw refused")

    if failures:
        print(f"\n{failures} check(s) failed")
        sys.exit(1)
    print("\nAll estimator checks passed")

except subprocess.CalledProcessError as e:
    print(f"FAIL: Command failed with {e}")
    print("STDERR:", e.stderr)
    sys.exit(1)
finally:
    for path in (TOURNAMENT_FILE, EMPTY_FILE):
        if os.path.exists(path):
            os.remove(path)
