"""
Prediction Scoring

Modules:
- positions: Point value of one predicted vs actual position
- predictions: Per-team score lines and totals for one participant
- leaderboard: Competition-ranked leaderboard from totals
- reconcile: Fetch, score and append to the score history
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "score_position":
        from src.scoring.positions import score_position
        return score_position
    if name == "score_prediction":
        from src.scoring.predictions import score_prediction
        return score_prediction
    if name == "build_leaderboard":
        from src.scoring.leaderboard import build_leaderboard
        return build_leaderboard
    if name == "ReconciliationService":
        from src.scoring.reconcile import ReconciliationService
        return ReconciliationService
    if name == "run_reconciliation":
        from src.scoring.reconcile import main
        return main
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
