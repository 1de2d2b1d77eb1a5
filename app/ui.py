# =========================
# app/ui.py
# =========================
from __future__ import annotations

import html

import streamlit as st


def inject_theme() -> None:
    st.markdown(
        """
<style>
/* ============================================================
   MediLens theme
   - Dark glass canvas
   - Cyan accent
   - Chat bubbles (user right / assistant left)
   ============================================================ */

/* Hide Streamlit built-in multipage nav (we route ourselves) */
[data-testid="stSidebarNav"] { display: none !important; }

:root{
  --accent: 190 90% 45%;
  --accent-2: 262 70% 60%;
  --canvas: #0B1220;
  --card: rgba(255,255,255,0.06);
  --border: rgba(255,255,255,0.12);
  --muted: rgba(226,232,240,0.65);
  --text: rgba(241,245,249,0.95);
}

.stApp { background: linear-gradient(160deg, #0B1220, #111827 60%, #0F172A); }

.stApp, .stMarkdown, .stMarkdown p, .stCaption, label,
h1, h2, h3, h4, h5, h6, div[data-testid="stMarkdownContainer"] {
  color: var(--text) !important;
}

div.block-container { padding-top: 2.2rem; padding-bottom: 2.2rem; }

/* =========================
   Inputs
   ========================= */
div[data-testid="stTextInput"] input,
div[data-testid="stTextArea"] textarea,
div[data-testid="stChatInput"] textarea {
  background: rgba(255,255,255,0.06) !important;
  color: var(--text) !important;
  border: 1px solid var(--border) !important;
  border-radius: 12px !important;
}

/* =========================
   Buttons
   ========================= */
.stButton>button{ border-radius: 12px; border: 1px solid var(--border); }
.stButton>button[kind="primary"]{
  background: linear-gradient(90deg, hsl(var(--accent)), hsl(var(--accent-2))) !important;
  border: none !important;
  color: white !important;
}

/* =========================
   Cards
   ========================= */
.ml-card{
  background: var(--card);
  border: 1px solid var(--border);
  border-radius: 18px;
  padding: 18px;
  backdrop-filter: blur(24px);
}
.ml-title{ font-weight: 800; font-size: 17px; margin-bottom: 4px; color: var(--text); }
.ml-sub{ color: var(--muted); font-size: 13px; line-height: 1.6; }
.ml-ico{
  width:44px; height:44px; border-radius:12px;
  background: hsla(var(--accent),0.15);
  display:flex; align-items:center; justify-content:center;
  font-size: 22px; margin-bottom: 12px;
}

/* =========================
   Chat
   ========================= */
.ml-msg{ display:flex; margin: 10px 0; }
.ml-msg.user{ justify-content:flex-end; }
.ml-bubble{
  max-width: 78%;
  padding: 12px 14px;
  border-radius: 16px;
  border: 1px solid var(--border);
  white-space: pre-wrap;
  line-height: 1.55;
  font-size: 14px;
  color: var(--text);
}
.ml-msg.user .ml-bubble{ background: hsla(var(--accent),0.22); }
.ml-msg.assistant .ml-bubble{ background: var(--card); }
.ml-time{ color: var(--muted); font-size: 11px; margin-top: 6px; }
.ml-typing{ color: var(--muted); font-style: italic; }

/* =========================
   Status banners (auth)
   ========================= */
.ml-banner{ padding: 10px 12px; border-radius: 12px; font-size: 14px; margin: 8px 0; }
.ml-banner.success{ background: rgba(34,197,94,0.15); border: 1px solid rgba(34,197,94,0.35); }
.ml-banner.failure{ background: rgba(239,68,68,0.15); border: 1px solid rgba(239,68,68,0.35); }
</style>
        """,
        unsafe_allow_html=True,
    )


def _esc(x: str) -> str:
    """Escape any user/store-provided strings before injecting into HTML."""
    return html.escape(str(x or ""), quote=True)


def card_open(title: str, subtitle: str = "") -> None:
    sub = f'<div class="ml-sub">{_esc(subtitle)}</div>' if subtitle else ""
    st.markdown(
        f'<div class="ml-card"><div class="ml-title">{_esc(title)}</div>{sub}',
        unsafe_allow_html=True,
    )


def card_close() -> None:
    st.markdown("</div>", unsafe_allow_html=True)


def feature_card(title: str, description: str, icon_text: str = "•") -> None:
    st.markdown(
        f"""
<div class="ml-card">
  <div class="ml-ico">{_esc(icon_text)}</div>
  <div class="ml-title">{_esc(title)}</div>
  <div class="ml-sub">{_esc(description)}</div>
</div>
        """,
        unsafe_allow_html=True,
    )


def status_banner(kind: str, message: str) -> None:
    """kind: 'success' | 'failure'. Message is escaped."""
    st.markdown(
        f'<div class="ml-banner {_esc(kind)}">{_esc(message)}</div>',
        unsafe_allow_html=True,
    )


def chat_bubble(role: str, content: str, time_label: str = "", pending: bool = False) -> None:
    """
    Render one chat turn.  Content is escaped; markdown in replies is shown
    as plain text inside the bubble.
    """
    body = '<span class="ml-typing">Thinking…</span>' if pending else _esc(content)
    time_html = f'<div class="ml-time">{_esc(time_label)}</div>' if time_label and not pending else ""
    st.markdown(
        f'<div class="ml-msg {_esc(role)}"><div class="ml-bubble">{body}{time_html}</div></div>',
        unsafe_allow_html=True,
    )
