"""
Central configuration for the League Table Predictor.

All shared constants and configuration values should be defined here
to avoid duplication and ensure consistency across modules.
"""

import os
from pathlib import Path

# --- Project Paths ---
PROJECT_ROOT = Path(__file__).parent.parent
DATA_FOLDER = PROJECT_ROOT / "data"
PREDICTIONS_FILE = Path(os.getenv("PREDICTIONS_FILE", DATA_FOLDER / "predictions.csv"))
HISTORY_FILE = Path(os.getenv("HISTORY_FILE", DATA_FOLDER / "history.csv"))

# --- Standings Provider ---
STANDINGS_API_URL = os.getenv("STANDINGS_API_URL", "https://api.football-data.org/v4")
FOOTBALL_DATA_API_TOKEN = os.getenv("FOOTBALL_DATA_API_TOKEN", "")
COMPETITION_CODE = os.getenv("COMPETITION_CODE", "PL")
REQUEST_TIMEOUT = 15  # seconds

# --- Scoring Rules ---
# Changing any value below is a rule change: bump SCORING_RULES_VERSION.
SCORING_RULES_VERSION = 1
EXACT_POINTS = 10
NEAR_POINTS = 5
NEAR_DISTANCE = 3
CLOSE_POINTS = 2
CLOSE_DISTANCE = 5
SAME_HALF_POINTS = 1
MISS_POINTS = 0

# --- League Configuration ---
TABLE_SIZE = 20  # Premier League

# Provider name -> canonical name used in predictions.csv
TEAM_ALIASES = {
    "Brighton Hove": "Brighton",
    "Brighton & Hove Albion": "Brighton",
    "Man City": "Manchester City",
    "Man United": "Manchester United",
    "Nottingham": "Nottingham Forest",
    "Spurs": "Tottenham",
    "Wolverhampton": "Wolves",
}

# --- Storage Layout ---
PREDICTION_COLUMNS = ["participant", "team", "position"]
HISTORY_COLUMNS = ["timestamp", "participant", "total", "snapshot_id"]

# --- Input Validation ---
MAX_INPUT_SIZE = 500_000  # Maximum standings file size in bytes (~500KB)
