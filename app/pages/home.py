"""
app/pages/home.py

Healthcare AI dashboard:
- Three feature cards, each opening the assistant in its own context
- Quick question box with instant (simulated) answers, newest first
"""

from __future__ import annotations

import streamlit as st

from pipelines.quick_answers import AnswerLog
from pipelines.schemas import ChatContext

try:
    from app.ui import card_close, card_open, feature_card, inject_theme
except ModuleNotFoundError:
    from ui import card_close, card_open, feature_card, inject_theme  # type: ignore

_FEATURES = [
    (
        ChatContext.upload,
        "📄",
        "Medical File Upload",
        "Securely upload and analyze medical documents, lab results, and imaging files with AI-powered insights",
        "Upload Files",
    ),
    (
        ChatContext.medicine_search,
        "🔎",
        "Medical Research",
        "Access comprehensive medical databases and research papers with intelligent search capabilities",
        "Search Database",
    ),
    (
        ChatContext.question,
        "💬",
        "AI Consultation",
        "Get instant AI-powered medical insights and recommendations for complex cases",
        "Ask AI",
    ),
]


def _open_chat(context: ChatContext) -> None:
    st.session_state["chat_context"] = context.value
    st.session_state["current_page"] = "chatbot"
    st.rerun()


def render() -> None:
    inject_theme()

    if not st.session_state.get("auth_ok"):
        st.warning("Please sign in.")
        st.session_state["current_page"] = "auth"
        st.rerun()
        return

    user = st.session_state.get("auth_user") or {}
    st.title("Healthcare AI Dashboard")
    st.caption(
        f"Welcome, {user.get('name', 'there')}. Leverage advanced AI technology to enhance "
        "patient care and medical decision-making."
    )

    cols = st.columns(3, gap="large")
    for col, (context, icon, title, description, cta) in zip(cols, _FEATURES):
        with col:
            feature_card(title, description, icon_text=icon)
            if st.button(cta, key=f"feature_{context.value}", use_container_width=True, type="primary"):
                _open_chat(context)

    st.markdown("<div style='height:18px'></div>", unsafe_allow_html=True)

    log: AnswerLog = st.session_state.setdefault("answer_log", AnswerLog())

    with st.expander("Ask a quick question"):
        with st.form("quick_question", clear_on_submit=True):
            question = st.text_area("Your question", placeholder="e.g. What does a high CRP level mean?")
            asked = st.form_submit_button("Get answer", type="primary")
        if asked:
            if question.strip():
                log.ask(question)
                st.rerun()
            else:
                st.warning("Please type a question first.")

    st.subheader("AI Answers")
    if not len(log):
        st.caption("No answers yet. Ask a question or open one of the assistants above.")
        return

    for answer in log:
        card_open(answer.question, answer.timestamp.strftime("%d %b %Y · %H:%M UTC"))
        st.markdown(answer.response)
        card_close()
