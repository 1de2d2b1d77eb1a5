"""
pipelines/auth_flow.py

Login / signup / password-reset flow.

Two layers:

transition(state, event) -> state
    Pure state machine over AuthFlowState.  Raises TransitionError for
    events the current state does not accept (second submit while one is
    in flight, mode switch while submitting, ...).

AuthFlow
    Imperative shell.  Owns the current state, talks to the
    AccountDirectory, waits out the simulated latencies through an
    injectable ``sleep`` coroutine, and hands an AuthenticatedUser to the
    surrounding app on login/signup success.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from config.settings import Settings, get_settings
from pipelines import validation
from pipelines.errors import DuplicateAccount, InvalidCredentials, NotFound, PortalError, TransitionError
from pipelines.schemas import (
    AuthEvent,
    AuthFields,
    AuthFlowState,
    AuthMode,
    AuthStatus,
    AuthenticatedUser,
    EditField,
    ResetCompleted,
    SessionEnded,
    StatusKind,
    SubmitFailed,
    SubmitStarted,
    SubmitSucceeded,
    SwitchMode,
)
from storage.directory import AccountDirectory
from storage.record_store import RecordStoreError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

SIGNUP_SUCCESS = "Account created successfully! You are now logged in."
LOGIN_SUCCESS = "Login successful! Welcome back."
RESET_SUCCESS = "Password reset successfully! You can now log in with your new password."
STORE_UNAVAILABLE = "Account storage is unavailable. Please try again later."
UNEXPECTED_FAILURE = "Something went wrong. Please try again."


# ---------------------------------------------------------------------------
# Pure transition function
# ---------------------------------------------------------------------------


def transition(state: AuthFlowState, event: AuthEvent) -> AuthFlowState:
    submitting = state.status.is_submitting

    if isinstance(event, SwitchMode):
        if submitting:
            raise TransitionError("cannot switch mode while a submission is in flight")
        return AuthFlowState(mode=event.mode)

    if isinstance(event, EditField):
        if submitting:
            raise TransitionError("fields are read-only while submitting")
        fields = state.fields.model_copy(update={event.name: event.value})
        return state.model_copy(update={"fields": fields})

    if isinstance(event, SubmitStarted):
        if submitting:
            raise TransitionError("a submission is already in flight")
        return state.model_copy(update={"status": AuthStatus(kind=StatusKind.submitting)})

    if isinstance(event, (SubmitSucceeded, SubmitFailed)):
        if not submitting:
            raise TransitionError(f"{type(event).__name__} without a submission in flight")
        kind = StatusKind.success if isinstance(event, SubmitSucceeded) else StatusKind.failure
        return state.model_copy(update={"status": AuthStatus(kind=kind, message=event.message)})

    if isinstance(event, ResetCompleted):
        # stale once the user has moved on to another mode
        if state.mode != AuthMode.reset or state.status.kind != StatusKind.success:
            return state
        return AuthFlowState(mode=AuthMode.login)

    if isinstance(event, SessionEnded):
        return AuthFlowState()

    raise TransitionError(f"unknown event {event!r}")


# ---------------------------------------------------------------------------
# Imperative shell
# ---------------------------------------------------------------------------


class AuthFlow:
    def __init__(
        self,
        directory: AccountDirectory,
        settings: Optional[Settings] = None,
        sleep: Sleep = asyncio.sleep,
        on_authenticated: Optional[Callable[[AuthenticatedUser], None]] = None,
    ):
        self.directory = directory
        self.settings = settings or get_settings()
        self._sleep = sleep
        self.on_authenticated = on_authenticated
        self.state = AuthFlowState()

    # -------------------------
    # State helpers
    # -------------------------
    def dispatch(self, event: AuthEvent) -> AuthFlowState:
        self.state = transition(self.state, event)
        return self.state

    @property
    def mode(self) -> AuthMode:
        return self.state.mode

    @property
    def status(self) -> AuthStatus:
        return self.state.status

    def switch_mode(self, mode: AuthMode | str) -> AuthFlowState:
        return self.dispatch(SwitchMode(mode=AuthMode(mode)))

    def edit(self, **values: str) -> AuthFlowState:
        """Set one or more form fields, e.g. ``flow.edit(email=..., password=...)``."""
        for name, value in values.items():
            self.dispatch(EditField(name=name, value=value))
        return self.state

    def logout(self) -> AuthFlowState:
        return self.dispatch(SessionEnded())

    # -------------------------
    # Mode logic
    # -------------------------
    def _signup(self, f: AuthFields) -> AuthenticatedUser:
        email, name = f.email.strip(), f.name.strip()
        validation.require_name(name)
        validation.require_email(email)
        validation.require_strong_password(f.password)
        validation.require_matching(f.password, f.confirm_password)
        if self.directory.find(email) is not None:
            raise DuplicateAccount()

        record = self.directory.register(email, name, f.password)
        return AuthenticatedUser(email=record.email, name=record.name)

    def _login(self, f: AuthFields) -> AuthenticatedUser:
        email = f.email.strip()
        validation.require_email(email)
        validation.require_password_present(f.password)

        record = self.directory.verify(email, f.password)
        if record is None:
            raise InvalidCredentials()
        return AuthenticatedUser(email=record.email, name=record.name)

    def _reset(self, f: AuthFields) -> None:
        email = f.email.strip()
        validation.require_email(email)
        if self.directory.find(email) is None:
            raise NotFound()
        validation.require_strong_password(f.password)
        validation.require_matching(f.password, f.confirm_password)

        self.directory.update_credential(email, f.password)

    # -------------------------
    # Submit
    # -------------------------
    async def submit(self) -> Optional[AuthenticatedUser]:
        """
        Run the current mode's submission to a terminal status.

        Returns the AuthenticatedUser after the hand-off delay on login or
        signup success, ``None`` otherwise.  No hand-off happens if the
        state changed during that delay (mode switch, logout, edit).
        Every failure, expected or not, ends in a failure status.  Raises
        TransitionError if a submission is already in flight.
        """
        self.dispatch(SubmitStarted())
        mode, fields = self.state.mode, self.state.fields

        user: Optional[AuthenticatedUser] = None
        try:
            await self._sleep(self.settings.submit_delay)
            if mode == AuthMode.signup:
                user = self._signup(fields)
                message = SIGNUP_SUCCESS
            elif mode == AuthMode.login:
                user = self._login(fields)
                message = LOGIN_SUCCESS
            else:
                self._reset(fields)
                message = RESET_SUCCESS
        except PortalError as exc:
            logger.info("%s failed for '%s': %s", mode.value, fields.email.strip(), exc.message)
            self.dispatch(SubmitFailed(message=exc.message))
            return None
        except RecordStoreError:
            logger.exception("%s could not reach the account store", mode.value)
            self.dispatch(SubmitFailed(message=STORE_UNAVAILABLE))
            return None
        except Exception:
            logger.exception("%s failed unexpectedly", mode.value)
            self.dispatch(SubmitFailed(message=UNEXPECTED_FAILURE))
            return None

        self.dispatch(SubmitSucceeded(message=message))
        succeeded = self.state
        logger.info("%s succeeded for '%s'", mode.value, fields.email.strip())

        if mode == AuthMode.reset:
            await self._sleep(self.settings.reset_revert_delay)
            self.dispatch(ResetCompleted())
            return None

        delay = self.settings.signup_handoff_delay if mode == AuthMode.signup else self.settings.login_handoff_delay
        await self._sleep(delay)
        if self.state is not succeeded:
            logger.info("%s hand-off for '%s' dropped: flow moved on", mode.value, fields.email.strip())
            return None
        if self.on_authenticated is not None:
            self.on_authenticated(user)
        return user
