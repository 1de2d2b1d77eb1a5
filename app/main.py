"""
app/main.py

MediLens — Streamlit entry point.
- Demo Mode toggle (template replies vs local model)
- Login gate backed by the local account directory
- Dashboard + context-specific assistant chat
- Global theme injection
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pipelines.auth_flow import transition  # noqa: E402
from pipelines.schemas import AuthFlowState, SessionEnded  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(
    page_title="MediLens",
    page_icon="🩺",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ---------------------------------------------------------------------------
# Session defaults
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "demo_mode": True,
    "auth_ok": False,
    "auth_user": None,          # {"email", "name"} | None
    "auth_state": None,         # AuthFlowState | None
    "current_page": "auth",     # auth | home | chatbot
    "chat_context": "question",
    "chat_manager": None,
}
for _key, _value in _DEFAULTS.items():
    if _key not in st.session_state:
        st.session_state[_key] = _value


# ---------------------------------------------------------------------------
# Import helper (package vs script-root)
# ---------------------------------------------------------------------------
def _import_render(module_name: str):
    """
    Import `render` from a page module, handling both:
    - package-style imports: app.pages.<module>
    - script-root imports: pages.<module>
    """
    try:
        mod = __import__(f"app.pages.{module_name}", fromlist=["render"])
        return mod.render
    except ModuleNotFoundError:
        mod = __import__(f"pages.{module_name}", fromlist=["render"])
        return mod.render


def _logout() -> None:
    user = st.session_state.get("auth_user") or {}
    logger.info("Session ended for '%s'", user.get("email"))
    state = st.session_state.get("auth_state") or AuthFlowState()
    st.session_state["auth_state"] = transition(state, SessionEnded())
    st.session_state["auth_ok"] = False
    st.session_state["auth_user"] = None
    st.session_state["current_page"] = "auth"
    st.session_state["chat_manager"] = None
    st.session_state.pop("answer_log", None)
    st.rerun()


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------
st.sidebar.title("🩺 MediLens")
st.sidebar.markdown("Prescription analysis, medicine information and health Q&A — one assistant.")
st.sidebar.divider()

st.sidebar.toggle(
    "🎬 Demo Mode (no model, hosting-friendly)",
    key="demo_mode",
    help="When enabled, the assistant answers with canned replies instead of loading a model.",
)

if st.session_state["auth_ok"]:
    user = st.session_state.get("auth_user") or {}
    st.sidebar.success(f"**{user.get('name', 'User')}**\n\n{user.get('email', '')}")
    if st.sidebar.button("↩️ Sign out"):
        _logout()
else:
    st.sidebar.info("Not logged in")

st.sidebar.divider()
st.sidebar.caption(
    "⚠️ Demo warning: Do not enter real personal health information on a public demo.\n\n"
    "Not a substitute for professional medical advice."
)

# ---------------------------------------------------------------------------
# Page routing
# ---------------------------------------------------------------------------
if not st.session_state["auth_ok"]:
    st.session_state["current_page"] = "auth"

page_key = st.session_state["current_page"]

if page_key == "home":
    _import_render("home")()

elif page_key == "chatbot":
    _import_render("chatbot")()

else:
    _import_render("auth")()
