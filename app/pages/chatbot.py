"""
app/pages/chatbot.py

Assistant chat for one context (upload / medicine-search / question).
- Transcript with pending "Thinking…" placeholder
- Input disabled while a reply is outstanding
- Demo Mode -> template replies, otherwise local MedGemma
"""

from __future__ import annotations

import asyncio

import streamlit as st

from models.response_generator import get_response_generator
from pipelines.conversation import ConversationManager
from pipelines.schemas import ChatContext, Role

try:
    from app.ui import chat_bubble, inject_theme
except ModuleNotFoundError:
    from ui import chat_bubble, inject_theme  # type: ignore

_PLACEHOLDERS = {
    ChatContext.upload: "Describe your prescription or paste the medication list…",
    ChatContext.medicine_search: "Type a medicine name, e.g. Paracetamol",
    ChatContext.question: "Ask a health question…",
}


def _get_manager(context: ChatContext, demo_mode: bool) -> ConversationManager:
    """Reuse the session's manager unless the context changed."""
    manager: ConversationManager | None = st.session_state.get("chat_manager")
    generator = get_response_generator(demo_mode)
    if manager is None or manager.context != context:
        manager = ConversationManager(generator, context)
        st.session_state["chat_manager"] = manager
    else:
        manager.generator = generator
    return manager


def render() -> None:
    inject_theme()

    if not st.session_state.get("auth_ok"):
        st.warning("Please sign in.")
        st.session_state["current_page"] = "auth"
        st.rerun()
        return

    context = ChatContext(st.session_state.get("chat_context", ChatContext.question.value))
    demo_mode = st.session_state.get("demo_mode", True)
    manager = _get_manager(context, demo_mode)

    left, right = st.columns([1, 6])
    with left:
        if st.button("← Back", disabled=manager.is_awaiting):
            st.session_state["current_page"] = "home"
            st.rerun()
    with right:
        st.markdown(f"### {manager.title}")
        st.caption("Demo replies" if demo_mode else "Local MedGemma replies")

    for msg in manager.turns:
        chat_bubble(
            msg.role.value,
            msg.content,
            time_label=msg.timestamp.strftime("%H:%M"),
            pending=msg.pending,
        )

    prompt = st.chat_input(_PLACEHOLDERS[context], disabled=manager.is_awaiting)
    if prompt and prompt.strip():
        # optimistic render; the manager appends the same two turns
        chat_bubble(Role.user.value, prompt.strip())
        chat_bubble(Role.assistant.value, "", pending=True)
        asyncio.run(manager.send(prompt))
        st.rerun()

    st.caption("⚠️ Not a substitute for professional medical advice.")
