import streamlit as st
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from src.config import TABLE_SIZE
from src.errors import ReconciliationError
from src.ingestion.standings import build_snapshot, fetch_standings, validate_snapshot
from src.scoring.leaderboard import build_leaderboard
from src.scoring.predictions import score_prediction, validate_prediction
from src.scoring.reconcile import STATUS_FAILED, STATUS_UPDATED, ReconciliationService
from src.storage import HistoryStore, PredictionStore

# --- Page Configuration ---
st.set_page_config(
    page_title="League Table Predictor",
    page_icon="⚽",
    layout="wide",
    initial_sidebar_state="collapsed"
)

# --- Design System ---
ACCENT_COLORS = {
    "primary": "#FF6B6B",
    "success": "#10B981",
    "warning": "#F59E0B",
    "danger": "#EF4444",
    "info": "#3B82F6",
    "chart_palette": [
        "#FF6B6B", "#3B82F6", "#10B981", "#F59E0B", "#8B5CF6",
        "#EC4899", "#06B6D4", "#84CC16", "#F97316", "#6366F1"
    ],
}

# Colour per point value of a score line
POINT_COLORS = {10: "#10B981", 5: "#3B82F6", 2: "#F59E0B", 1: "#8B5CF6", 0: "#EF4444"}

RANK_ICONS = {1: "👑", 2: "🥈", 3: "🥉"}


def format_rank(rank):
    """Rank label with a medal for the podium."""
    if pd.isna(rank):
        return ""
    rank = int(rank)
    return f"{RANK_ICONS.get(rank, '')} #{rank}".strip()


def format_change(value):
    if pd.isna(value) or value == 0:
        return "→"
    return f"↑ {int(value)}" if value > 0 else f"↓ {abs(int(value))}"


def apply_plotly_style(fig):
    """Apply consistent styling to Plotly figures.

    Text colors are not set so Streamlit can inject theme-aware colors.
    """
    system_font = '-apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, "Helvetica Neue", Arial, sans-serif'
    grid_color = "rgba(128, 128, 128, 0.4)"
    line_color = "rgba(128, 128, 128, 0.3)"

    fig.update_layout(
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        font=dict(family=system_font, size=16),
        xaxis=dict(gridcolor=grid_color, linecolor=line_color, showgrid=True, zeroline=False),
        yaxis=dict(gridcolor=grid_color, linecolor=line_color, showgrid=True, zeroline=False),
        legend=dict(title_text="", bgcolor="rgba(0,0,0,0)", borderwidth=0),
        hoverlabel=dict(bgcolor="rgba(50, 50, 50, 0.9)", font=dict(color="#FFFFFF", family=system_font, size=14)),
        dragmode=False,  # Disable pan/zoom to prevent scroll hijacking on mobile
    )
    return fig


# --- Data Loading Functions ---
@st.cache_data(ttl=300)
def load_history_data():
    """Load the full score history."""
    return HistoryStore().load()


@st.cache_data(ttl=3600)
def load_predictions_data():
    """Load every participant's prediction."""
    return PredictionStore().load()


@st.cache_data(ttl=600)
def load_current_snapshot():
    """Fetch and validate the live standings."""
    snapshot = build_snapshot(fetch_standings())
    validate_snapshot(snapshot)
    return snapshot


@st.cache_resource
def get_reconciliation_service():
    """One service per server process so manual refreshes never overlap."""
    return ReconciliationService()


def latest_leaderboard(df_history):
    """Leaderboard from the two most recent history timestamps."""
    timestamps = sorted(df_history['timestamp'].unique())
    latest = df_history[df_history['timestamp'] == timestamps[-1]]
    totals = dict(zip(latest['participant'], latest['total']))

    previous_totals = None
    if len(timestamps) > 1:
        previous = df_history[df_history['timestamp'] == timestamps[-2]]
        previous_totals = dict(zip(previous['participant'], previous['total']))

    return build_leaderboard(totals, previous_totals), timestamps[-1]


def render_leaderboard_tab(df_history):
    if df_history.empty:
        st.info("No score history yet. Refresh standings to record the first point.")
        return

    leaderboard, as_of = latest_leaderboard(df_history)
    st.caption(f"As of {pd.Timestamp(as_of).strftime('%Y-%m-%d %H:%M')} UTC")

    display = pd.DataFrame({
        "Rank": leaderboard['rank'].map(format_rank),
        "Participant": leaderboard['participant'],
        "Points": leaderboard['total'],
    })
    if 'change' in leaderboard.columns:
        display["Change"] = leaderboard['change'].map(lambda c: "" if pd.isna(c) else f"{int(c):+d}")
        display["Movement"] = leaderboard['rank_change'].map(format_change)

    st.dataframe(display, hide_index=True, width="stretch")


def render_history_tab(df_history):
    if df_history.empty:
        st.info("No score history yet.")
        return

    fig = px.line(
        df_history.sort_values('timestamp'),
        x='timestamp',
        y='total',
        color='participant',
        markers=True,
        labels={'timestamp': 'Date', 'total': 'Points', 'participant': 'Participant'},
        color_discrete_sequence=ACCENT_COLORS["chart_palette"],
    )
    apply_plotly_style(fig)
    fig.update_layout(height=450, margin=dict(l=20, r=20, t=30, b=20))
    st.plotly_chart(fig, width="stretch", config={'displayModeBar': False, 'scrollZoom': False})


def render_breakdown_tab(predictions):
    if not predictions:
        st.info("No predictions found.")
        return

    participant = st.selectbox("Participant", sorted(predictions, key=str.casefold), key="breakdown_participant")
    prediction = predictions[participant]

    try:
        validate_prediction(prediction, participant, team_count=TABLE_SIZE)
        snapshot = load_current_snapshot()
    except ReconciliationError as e:
        st.error(str(e))
        return

    result = score_prediction(prediction, snapshot, participant)
    for warning in result['warnings']:
        st.warning(str(warning))

    col1, col2, col3 = st.columns(3)
    col1.metric("Total", result['total'])
    col2.metric("Exact", int((result['lines']['points'] == 10).sum()))
    col3.metric("Unscored teams", result['unscored'])

    lines = result['lines']
    scored = lines[lines['status'] == "scored"]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=scored['team'],
        y=scored['points'].astype(int),
        marker_color=[POINT_COLORS.get(int(p), ACCENT_COLORS["info"]) for p in scored['points']],
        customdata=scored[['predicted_position', 'actual_position']].astype(int).to_numpy(),
        hovertemplate="<b>%{x}</b><br>Predicted #%{customdata[0]}<br>Actual #%{customdata[1]}<br>%{y} pts<extra></extra>",
    ))
    apply_plotly_style(fig)
    fig.update_layout(height=350, margin=dict(l=20, r=20, t=30, b=20), showlegend=False)
    st.plotly_chart(fig, width="stretch", config={'displayModeBar': False, 'scrollZoom': False})

    st.dataframe(
        lines.rename(columns={
            'team': 'Team',
            'predicted_position': 'Predicted',
            'actual_position': 'Actual',
            'points': 'Points',
            'status': 'Status',
        }).drop(columns=['participant']),
        hide_index=True,
        width="stretch",
    )


# --- Main App ---
def main():
    st.title("League Table Predictor")

    if st.button("🔄 Refresh standings"):
        result = get_reconciliation_service().reconcile()
        if result['status'] == STATUS_UPDATED:
            st.success(result['reason'])
            load_history_data.clear()
            load_current_snapshot.clear()
        elif result['status'] == STATUS_FAILED:
            st.error(f"{result['error']}: {result['reason']}")
        else:
            st.info(result['reason'])
        for warning in result['warnings']:
            st.warning(str(warning))

    try:
        df_history = load_history_data()
        predictions = load_predictions_data()
    except ReconciliationError as e:
        st.error(str(e))
        return

    tab_leaderboard, tab_history, tab_breakdown = st.tabs(["🏆 Leaderboard", "📈 History", "🔍 Breakdown"])
    with tab_leaderboard:
        render_leaderboard_tab(df_history)
    with tab_history:
        render_history_tab(df_history)
    with tab_breakdown:
        render_breakdown_tab(predictions)


if __name__ == "__main__":
    main()
