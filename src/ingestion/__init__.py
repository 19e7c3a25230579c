"""
Standings Ingestion

Modules:
- standings: Fetch the live table and build StandingsSnapshot objects
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "build_snapshot":
        from src.ingestion.standings import build_snapshot
        return build_snapshot
    if name == "fetch_standings":
        from src.ingestion.standings import fetch_standings
        return fetch_standings
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
