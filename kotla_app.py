# kotla_app.py
import collections
import logging
import threading
from typing import Deque, Tuple

import streamlit as st

from kotla import config
from kotla.charts import TIER_COLORS, build_guess_distribution, build_guess_map
from kotla.errors import KotlaError
from kotla.game import MAX_GUESS_COUNT, KotlaGame
from kotla.presenter import Presenter

logging.basicConfig(level=config.log_level)
logger = logging.getLogger("kotla_app")

TOAST_ICONS = {"info": "ℹ️", "success": "🎉", "error": "❌"}


class StreamlitPresenter(Presenter):
    """Queues core events until the next page run can render them.

    Callbacks may arrive from the post-game timer thread, where Streamlit
    elements cannot be drawn, so they only record what happened.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.toasts: Deque[Tuple[str, str]] = collections.deque()
        self.pending_celebration = False
        self.stats_requested = False
        self.pending_stats = False
        self.needs_onboarding = False

    def notify(self, kind: str, message: str) -> None:
        super().notify(kind, message)
        with self._lock:
            self.toasts.append((kind, message))

    def celebrate(self) -> None:
        super().celebrate()
        self.pending_celebration = True

    def show_stats(self) -> None:
        super().show_stats()
        self.stats_requested = True
        self.pending_stats = True

    def onboard(self) -> None:
        super().onboard()
        self.needs_onboarding = True

    def drain_toasts(self):
        with self._lock:
            items = list(self.toasts)
            self.toasts.clear()
        return items


def get_game() -> KotlaGame:
    """One game object per browser session, started on every run."""
    if "game" not in st.session_state:
        presenter = StreamlitPresenter()
        st.session_state["presenter"] = presenter
        st.session_state["game"] = KotlaGame(presenter=presenter)
    game = st.session_state["game"]
    game.start()
    # Other sessions may share the data directory.
    game.refresh()
    return game


def render_help() -> None:
    st.subheader("How to play")
    st.markdown(
        f"- Guess the Indonesian city of the day in {MAX_GUESS_COUNT} tries.\n"
        "- Each guess shows how far the city of the day is, and in which direction.\n"
        "- Colours go from red (far) through yellow and green to a match.\n"
        "- A new city every day. Progress and stats save locally."
    )


def render_row(row) -> None:
    bg = TIER_COLORS[row.tier]
    st.markdown(
        (
            f"<div style='display:flex;justify-content:space-between;align-items:center;"
            f"background:{bg};border-radius:8px;padding:10px 16px;margin:6px 0;font-size:18px;'>"
            f"  <div style='font-weight:600;'>{row.city.name}</div>"
            f"  <div aria-label='{row.aria_label}' style='font-variant-numeric:tabular-nums;'>"
            f"{row.distance_label} {row.direction.emoji}</div>"
            f"</div>"
        ),
        unsafe_allow_html=True,
    )


def render_spacer() -> None:
    st.markdown(
        "<div style='border:1px dashed #e2e8f0;border-radius:8px;padding:10px 16px;margin:6px 0;'>&nbsp;</div>",
        unsafe_allow_html=True,
    )


def render_stats(game: KotlaGame, expanded: bool) -> None:
    stats = game.all_time_stats
    with st.expander("📊 Statistics", expanded=expanded):
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Played", stats.play_count)
        c2.metric("Win %", stats.win_percentage)
        c3.metric("Current streak", stats.current_streak)
        c4.metric("Longest streak", stats.longest_streak)
        highlight = len(game.guesses) if game.game_state == "won" else None
        st.plotly_chart(build_guess_distribution(stats, highlight=highlight), use_container_width=True)
        if game.game_state != "in_progress":
            st.caption("Share your result")
            st.code(game.share_text(), language=None)


@st.fragment(run_every=1)
def watch_after_game(presenter: StreamlitPresenter) -> None:
    """Rerun the page once the post-game task has fired on its timer thread."""
    if presenter.pending_celebration or presenter.pending_stats:
        st.rerun()


def render_footer() -> None:
    st.write("---")
    st.markdown(
        (
            "<div style='color:#64748b;font-size:12px;text-align:center;'>"
            "Kotla: a daily guessing game for the cities of Indonesia."
            "</div>"
        ),
        unsafe_allow_html=True,
    )


# ---------- App UI ----------
st.set_page_config(page_title="Kotla", layout="centered")

game = get_game()
presenter: StreamlitPresenter = st.session_state["presenter"]

st.title("🇮🇩 Kotla")
st.write("Guess today's Indonesian city by distance and direction.")

if presenter.needs_onboarding:
    render_help()
    if st.button("Start playing", type="primary"):
        presenter.needs_onboarding = False
        st.rerun()
    render_footer()
    st.stop()

if game.is_loading:
    with st.spinner("Picking today's city..."):
        game.selector.wait(timeout=config.seed_timeout)

if game.has_error:
    st.error("Today's city could not be loaded.")
    if st.button("Try again"):
        game.retry_target()
        st.rerun()
    render_footer()
    st.stop()

for kind, message in presenter.drain_toasts():
    st.toast(message, icon=TOAST_ICONS.get(kind))

if presenter.pending_celebration:
    presenter.pending_celebration = False
    st.balloons()
presenter.pending_stats = False

rows = game.rows()
for row in rows:
    render_row(row)
for _ in range(MAX_GUESS_COUNT - len(rows)):
    render_spacer()

state = game.game_state
if state == "in_progress":
    with st.form(key=f"guess_form_{st.session_state.get('input_counter', 0)}"):
        user_input = st.text_input(
            "Your guess",
            key=f"input_{st.session_state.get('input_counter', 0)}",
            placeholder="Type a city name and press Enter",
        )
        submitted = st.form_submit_button("Guess", type="primary")
    if submitted:
        try:
            game.submit_guess(user_input)
        except KotlaError as exc:
            # Already reported through the presenter queue.
            logger.info("Guess rejected: %s", exc)
        else:
            st.session_state["input_counter"] = st.session_state.get("input_counter", 0) + 1
        st.rerun()
elif state == "won":
    st.success(f"You found {game.city_of_the_day.name} in {len(rows)} guesses.")
else:
    st.error(f"Today's Kotla was {game.city_of_the_day.name}.")

if rows:
    st.plotly_chart(
        build_guess_map(rows, game.city_of_the_day, reveal=state != "in_progress"),
        use_container_width=True,
    )

render_stats(game, expanded=presenter.stats_requested)

if game.after_game_pending or presenter.pending_celebration or presenter.pending_stats:
    watch_after_game(presenter)

with st.expander("❓ How to play"):
    render_help()

render_footer()
