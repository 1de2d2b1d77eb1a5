"""
app/pages/auth.py

MediLens sign-in page:
- Sign In / Sign Up / Reset Password forms
- Drives pipelines.auth_flow.AuthFlow; only the AuthFlowState lives in
  session_state, the flow object is rebuilt on every rerun
"""

from __future__ import annotations

import asyncio

import streamlit as st

from pipelines.auth_flow import AuthFlow
from pipelines.errors import TransitionError
from pipelines.schemas import AuthFlowState, AuthMode, AuthStatus, AuthenticatedUser, StatusKind
from storage.directory import get_directory

try:
    from app.ui import inject_theme, status_banner
except ModuleNotFoundError:
    from ui import inject_theme, status_banner  # type: ignore

_TITLES = {
    AuthMode.login: ("Welcome Back", "Sign in to access your healthcare dashboard"),
    AuthMode.signup: ("Create Account", "Join MediLens to get AI-powered health insights"),
    AuthMode.reset: ("Reset Password", "Enter your email and choose a new password"),
}

_SUBMIT_LABELS = {
    AuthMode.login: "Sign In",
    AuthMode.signup: "Create Account",
    AuthMode.reset: "Reset Password",
}


def _show_status(slot, status: AuthStatus) -> None:
    with slot.container():
        if status.kind == StatusKind.success and status.message:
            status_banner("success", status.message)
        elif status.kind == StatusKind.failure and status.message:
            status_banner("failure", status.message)
        elif status.kind == StatusKind.submitting:
            st.caption("Please wait…")


def _on_authenticated(user: AuthenticatedUser) -> None:
    st.session_state["auth_ok"] = True
    st.session_state["auth_user"] = user.model_dump()
    st.session_state["current_page"] = "home"


def _build_flow(slot) -> AuthFlow:
    async def _sleep_showing_status(seconds: float) -> None:
        # Streamlit only repaints on rerun; push the in-between status now
        _show_status(slot, flow.status)
        await asyncio.sleep(seconds)

    flow = AuthFlow(get_directory(), sleep=_sleep_showing_status, on_authenticated=_on_authenticated)
    flow.state = st.session_state.get("auth_state") or AuthFlowState()
    return flow


def _switch(flow: AuthFlow, mode: AuthMode) -> None:
    try:
        flow.switch_mode(mode)
    except TransitionError:
        return
    st.session_state["auth_state"] = flow.state
    st.rerun()


def render() -> None:
    inject_theme()

    _, col, _ = st.columns([1, 1.3, 1])
    with col:
        st.markdown("## 🩺 MediLens")
        slot_title = st.empty()
        tab_l, tab_s = st.columns(2)
        status_slot = st.empty()

        flow = _build_flow(status_slot)
        mode = flow.mode
        title, subtitle = _TITLES[mode]
        with slot_title.container():
            st.markdown(f"### {title}")
            st.caption(subtitle)

        if tab_l.button("Sign In", use_container_width=True, type="primary" if mode == AuthMode.login else "secondary"):
            _switch(flow, AuthMode.login)
        if tab_s.button("Sign Up", use_container_width=True, type="primary" if mode == AuthMode.signup else "secondary"):
            _switch(flow, AuthMode.signup)

        _show_status(status_slot, flow.status)

        with st.form(key=f"auth_form_{mode.value}"):
            name = ""
            confirm = ""
            if mode == AuthMode.signup:
                name = st.text_input("Full name", key=f"{mode.value}_name")
            email = st.text_input("Email", key=f"{mode.value}_email", placeholder="you@example.com")
            password = st.text_input(
                "New password" if mode == AuthMode.reset else "Password",
                type="password",
                key=f"{mode.value}_password",
            )
            if mode in (AuthMode.signup, AuthMode.reset):
                confirm = st.text_input("Confirm password", type="password", key=f"{mode.value}_confirm")

            submitted = st.form_submit_button(_SUBMIT_LABELS[mode], type="primary", use_container_width=True)

        if submitted and not flow.status.is_submitting:
            flow.edit(email=email, password=password, name=name, confirm_password=confirm)
            with st.spinner("Processing…"):
                asyncio.run(flow.submit())
            st.session_state["auth_state"] = flow.state
            st.rerun()

        if mode == AuthMode.login:
            if st.button("Forgot password?", type="tertiary"):
                _switch(flow, AuthMode.reset)
        elif mode == AuthMode.reset:
            if st.button("← Back to sign in", type="tertiary"):
                _switch(flow, AuthMode.login)

        st.markdown(
            """
<p style="color: rgba(226,232,240,0.55); font-size:12px; margin-top:16px;">
By continuing you agree to our Terms of Service and Privacy Policy (demo).
Accounts are stored locally on this machine only.
</p>
            """,
            unsafe_allow_html=True,
        )
