"""
explainer-eval Dashboard

Streamlit page for evaluating a video description metric by metric or all
at once, and for browsing evaluations saved by the CLI.

Usage:
    pip install -e ".[viewer]"
    streamlit run src/explainer_eval/viewer.py
    streamlit run src/explainer_eval/viewer.py -- --results-dir results

Requires the package to be installed (e.g. via ``pip install -e .``).
"""

from __future__ import annotations

import argparse
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go
import streamlit as st
from dotenv import load_dotenv

from explainer_eval.domain.constants import METRIC_CATALOG, SCORE_MAX, SCORE_MIN
from explainer_eval.domain.entities import EvaluationOutcome, EvaluationRequest
from explainer_eval.domain.exceptions import EvaluatorError
from explainer_eval.evaluator_config import load_config
from explainer_eval.infrastructure.model_clients.factory import create_backend
from explainer_eval.title_store import JsonFileTitleStore
from explainer_eval.use_cases.evaluation import evaluate_all, evaluate_metric, outcome_to_frame

VIDEO_TYPES = ["Tutorial", "Project walkthrough", "Concept explainer", "Interview prep", "Other"]

# -- Colors --
LOW_SCORE_COLOR = "#ea4335"
MID_SCORE_COLOR = "#fbbc04"
HIGH_SCORE_COLOR = "#34a853"


def _score_color(score: float) -> str:
    if score < 5:
        return LOW_SCORE_COLOR
    if score < 8:
        return MID_SCORE_COLOR
    return HIGH_SCORE_COLOR


def _find_result_files(results_dir: Path) -> list[dict]:
    """Find evaluation CSVs (newest first) written by the CLI runner."""
    files = []
    for csv_path in sorted(results_dir.glob("evaluation_*.csv"), reverse=True):
        run_id = csv_path.stem.replace("evaluation_", "")
        raw_path = results_dir / f"raw_{run_id}.txt"
        files.append({
            "run_id": run_id,
            "csv_path": csv_path,
            "raw_path": raw_path if raw_path.exists() else None,
        })
    return files


@st.cache_resource
def _services():
    """Backend and title store shared across reruns."""
    load_dotenv()
    config = load_config()
    store = JsonFileTitleStore(config.storage.title_store_path, seed_path=config.storage.seed_path)
    return create_backend(config), store


def _render_score_chart(results_df: pd.DataFrame) -> None:
    """Render a horizontal bar chart of scores per metric."""
    scores = pd.to_numeric(results_df["score"], errors="coerce").fillna(0)
    fig = go.Figure(go.Bar(
        x=scores,
        y=results_df["metric"],
        orientation="h",
        marker=dict(color=[_score_color(s) for s in scores]),
        text=scores,
        textposition="outside",
    ))
    fig.update_layout(
        xaxis_title="Score",
        xaxis_range=[0, SCORE_MAX + 0.5],
        yaxis=dict(autorange="reversed"),
        template="plotly_white",
        height=max(250, 40 * len(results_df) + 100),
        margin=dict(l=10, r=10, t=30, b=30),
    )
    st.plotly_chart(fig, use_container_width=True)


def _render_outcome(outcome: EvaluationOutcome, url: str) -> None:
    """Render scores, feedback and common improvements (raw text as fallback)."""
    if not outcome.metric_results:
        st.warning("Could not recover structured results. Showing the raw reply.")
        st.text(outcome.raw_text)
        return

    results_df = outcome_to_frame(outcome, url)
    if len(results_df) > 1:
        _render_score_chart(results_df)

    for r in outcome.metric_results:
        st.subheader(r.metric)
        st.markdown(f"**Score: {r.score}** / {SCORE_MAX}")
        st.write(r.feedback)

    if outcome.common_improvements:
        st.subheader("Common Improvement Suggestions")
        st.markdown("\n".join(f"- {s}" for s in outcome.common_improvements))

    with st.expander("Raw reply"):
        st.code(outcome.raw_text, language="json")


def _render_saved_runs(results_dir: Path) -> None:
    """Render evaluations saved by the CLI runner."""
    st.header("Saved Evaluations")

    if not results_dir.exists():
        st.info(f"Results directory not found: `{results_dir}`")
        return

    files = _find_result_files(results_dir)
    if not files:
        st.info(f"No evaluation files found in `{results_dir}/`")
        return

    run_ids = [f["run_id"] for f in files]
    selected_run_id = st.selectbox("Run", run_ids, index=0)
    selected = next(f for f in files if f["run_id"] == selected_run_id)

    results_df = pd.read_csv(selected["csv_path"])
    if results_df.empty:
        st.warning("No structured results were recovered for this run.")
    else:
        st.caption(f"URL: {results_df['url'].iloc[0]}")
        _render_score_chart(results_df)
        st.dataframe(results_df, use_container_width=True, hide_index=True)

    if selected["raw_path"]:
        with st.expander("Raw reply"):
            st.text(selected["raw_path"].read_text(encoding="utf-8"))


def _render_evaluator() -> None:
    """Render the request form, metric buttons and results."""
    backend, store = _services()

    st.header("Video")
    url = st.text_input("Video URL").strip()

    # A fetched title is applied before the input widget is created
    if "fetched_title" in st.session_state:
        st.session_state["title_input"] = st.session_state.pop("fetched_title")

    col_title, col_fetch, col_save = st.columns([4, 1, 1])
    with col_title:
        title = st.text_input("Title", key="title_input").strip()
    with col_fetch:
        if st.button("Fetch stored title", disabled=not url):
            stored = store.get(url)
            if stored:
                st.session_state["fetched_title"] = stored
                st.rerun()
            else:
                st.info("No stored title for this URL.")
    with col_save:
        if st.button("Save title", disabled=not (url and title)):
            store.set(url, title)
            st.success(f"Saved title for {url}")

    video_type = st.selectbox("Video type", VIDEO_TYPES)
    purpose = st.text_area("Purpose")
    key_concepts = st.text_area("Key concepts")
    justifications = st.text_area("Justifications")
    goal = st.text_area("Evaluation goal")

    request = EvaluationRequest(
        url=url,
        video_type=video_type,
        purpose=purpose,
        key_concepts=key_concepts,
        justifications=justifications,
        goal=goal,
        title=title or None,
    )

    st.header("Metrics")
    st.caption(f"Each metric is scored from {SCORE_MIN} (poor) to {SCORE_MAX} (excellent).")
    selected_metric = None
    columns = st.columns(3)
    for i, metric in enumerate(METRIC_CATALOG):
        if columns[i % 3].button(f"{i + 1}. {metric}", key=f"metric_{i}", use_container_width=True):
            selected_metric = metric
    run_all = st.button("Evaluate all metrics", type="primary")

    if not (selected_metric or run_all):
        return
    if not url:
        st.error("Please enter a video URL")
        return

    st.header("Results")
    try:
        if run_all:
            with st.spinner("Evaluating all metrics (this may take a while)..."):
                outcome = evaluate_all(request, backend, store)
        else:
            with st.spinner(f"Evaluating: {selected_metric}"):
                outcome = evaluate_metric(request, selected_metric, backend, store)
    except EvaluatorError as e:
        st.error(f"Error: {e}")
        return

    _render_outcome(outcome, url)


def main() -> None:
    # Parse --results-dir from Streamlit args (after --)
    parser = argparse.ArgumentParser()
    parser.add_argument("--results-dir", default="results")
    args, _ = parser.parse_known_args()

    st.set_page_config(page_title="explainer-eval", layout="wide")
    st.title("Explainer Video Evaluator")

    evaluate_tab, saved_tab = st.tabs(["Evaluate", "Saved evaluations"])
    with evaluate_tab:
        _render_evaluator()
    with saved_tab:
        _render_saved_runs(Path(args.results_dir))


if __name__ == "__main__":
    main()
