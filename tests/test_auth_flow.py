from __future__ import annotations

import asyncio

import pytest

from pipelines.auth_flow import (
    LOGIN_SUCCESS,
    RESET_SUCCESS,
    SIGNUP_SUCCESS,
    STORE_UNAVAILABLE,
    UNEXPECTED_FAILURE,
    AuthFlow,
    transition,
)
from pipelines.errors import TransitionError
from pipelines.schemas import (
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
from storage.passwords import PlaintextHasher
from storage.record_store import InMemoryRecordStore, JsonFileRecordStore, RecordStoreError

# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------

SUBMITTING = AuthFlowState(status=AuthStatus(kind=StatusKind.submitting))


def test_switch_mode_clears_fields_and_status():
    state = AuthFlowState(
        mode=AuthMode.login,
        fields=AuthFields(email="a@b.co", password="x"),
        status=AuthStatus(kind=StatusKind.failure, message="nope"),
    )
    new = transition(state, SwitchMode(mode=AuthMode.signup))

    assert new.mode == AuthMode.signup
    assert new.fields == AuthFields()
    assert new.status.kind == StatusKind.idle


def test_switch_mode_rejected_while_submitting():
    with pytest.raises(TransitionError):
        transition(SUBMITTING, SwitchMode(mode=AuthMode.reset))


def test_second_submit_rejected_while_submitting():
    with pytest.raises(TransitionError):
        transition(SUBMITTING, SubmitStarted())


def test_edit_field_keeps_status():
    state = AuthFlowState(status=AuthStatus(kind=StatusKind.failure, message="bad"))
    new = transition(state, EditField(name="email", value="a@b.co"))
    assert new.fields.email == "a@b.co"
    assert new.status.message == "bad"
    with pytest.raises(TransitionError):
        transition(SUBMITTING, EditField(name="email", value="x"))


def test_resolution_requires_submission():
    with pytest.raises(TransitionError):
        transition(AuthFlowState(), SubmitSucceeded(message="ok"))
    failed = transition(SUBMITTING, SubmitFailed(message="bad"))
    assert failed.status == AuthStatus(kind=StatusKind.failure, message="bad")


def test_reset_completed_only_applies_to_successful_reset():
    done = AuthFlowState(
        mode=AuthMode.reset,
        fields=AuthFields(email="a@b.co"),
        status=AuthStatus(kind=StatusKind.success, message=RESET_SUCCESS),
    )
    assert transition(done, ResetCompleted()) == AuthFlowState(mode=AuthMode.login)

    moved_on = AuthFlowState(mode=AuthMode.signup)
    assert transition(moved_on, ResetCompleted()) is moved_on


def test_session_ended_returns_to_login_idle():
    state = AuthFlowState(mode=AuthMode.signup, fields=AuthFields(name="Al"))
    assert transition(state, SessionEnded()) == AuthFlowState()


def test_states_are_immutable():
    state = AuthFlowState()
    transition(state, EditField(name="email", value="a@b.co"))
    assert state.fields.email == ""


# ---------------------------------------------------------------------------
# Shell
# ---------------------------------------------------------------------------


@pytest.fixture
def handoffs():
    return []


@pytest.fixture
def flow(plain_directory, settings, fake_sleep, handoffs) -> AuthFlow:
    return AuthFlow(plain_directory, settings=settings, sleep=fake_sleep, on_authenticated=handoffs.append)


def _submit(flow: AuthFlow):
    return asyncio.run(flow.submit())


def _signup(flow: AuthFlow, email="alice@example.com", name="Alice", password="Secret1", confirm=None):
    flow.switch_mode(AuthMode.signup)
    flow.edit(email=email, name=name, password=password, confirm_password=password if confirm is None else confirm)
    return _submit(flow)


def test_signup_success_emits_session_after_delay(flow, fake_sleep, handoffs, plain_directory):
    user = _signup(flow, email="  alice@example.com ", name=" Alice ")

    assert user == AuthenticatedUser(email="alice@example.com", name="Alice")
    assert handoffs == [user]
    assert flow.status == AuthStatus(kind=StatusKind.success, message=SIGNUP_SUCCESS)
    assert fake_sleep.calls == [1.0, 1.5]
    assert plain_directory.find("alice@example.com").credential == "Secret1"


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"name": "A"}, "Name must be at least 2 characters long"),
        ({"email": "not-an-email"}, "Please enter a valid email address"),
        ({"password": "Ab1"}, "Password must be at least 6 characters long"),
        ({"password": "ABCDEF1"}, "Password must contain at least one lowercase letter"),
        ({"password": "abcdef1"}, "Password must contain at least one uppercase letter"),
        ({"password": "Abcdefg"}, "Password must contain at least one number"),
        ({"confirm": "Secret2"}, "Passwords do not match"),
        # name checked before email
        ({"name": "", "email": "bad"}, "Name must be at least 2 characters long"),
    ],
)
def test_signup_validation_failures(flow, handoffs, plain_directory, kwargs, message):
    assert _signup(flow, **kwargs) is None
    assert flow.status == AuthStatus(kind=StatusKind.failure, message=message)
    assert handoffs == []
    assert len(plain_directory) == 0


def test_signup_duplicate_email(flow, plain_directory):
    plain_directory.register("alice@example.com", "Alice", "Secret1")

    assert _signup(flow, email="ALICE@example.com") is None
    assert flow.status.message == "An account with this email already exists"
    assert len(plain_directory) == 1


def test_failure_keeps_form_editable(flow):
    _signup(flow, password="weak")
    assert flow.status.kind == StatusKind.failure
    assert flow.state.fields.email == "alice@example.com"

    flow.edit(password="Secret1", confirm_password="Secret1")
    assert _submit(flow) is not None


def _login(flow: AuthFlow, email, password):
    flow.switch_mode(AuthMode.login)
    flow.edit(email=email, password=password)
    return _submit(flow)


def test_login_success(flow, plain_directory, handoffs, fake_sleep):
    plain_directory.register("Alice@Example.com", "Alice", "Secret1")

    user = _login(flow, "alice@example.com", "Secret1")

    assert user == AuthenticatedUser(email="Alice@Example.com", name="Alice")
    assert flow.status.message == LOGIN_SUCCESS
    assert handoffs == [user]
    assert fake_sleep.calls == [1.0, 1.0]


def test_login_failures_are_indistinguishable(flow, plain_directory, handoffs):
    plain_directory.register("alice@example.com", "Alice", "Secret1")

    _login(flow, "alice@example.com", "Wrong123")
    wrong_password = flow.status

    _login(flow, "nobody@example.com", "Secret1")
    unknown_email = flow.status

    assert wrong_password == unknown_email == AuthStatus(
        kind=StatusKind.failure, message="Invalid username or password"
    )
    assert handoffs == []


def test_login_field_checks(flow):
    _login(flow, "bad", "x")
    assert flow.status.message == "Please enter a valid email address"
    _login(flow, "a@b.co", "")
    assert flow.status.message == "Please enter your password"


def test_login_with_hashed_directory(hashed_directory, settings, fake_sleep):
    hashed_directory.register("alice@example.com", "Alice", "Secret1")
    flow = AuthFlow(hashed_directory, settings=settings, sleep=fake_sleep)

    assert _login(flow, "alice@example.com", "Secret1").name == "Alice"


def _reset(flow: AuthFlow, email, password, confirm=None):
    flow.switch_mode(AuthMode.reset)
    flow.edit(email=email, password=password, confirm_password=password if confirm is None else confirm)
    return _submit(flow)


def test_reset_then_login(flow, plain_directory, fake_sleep):
    plain_directory.register("alice@example.com", "Alice", "Secret1")
    seen: list[AuthFlowState] = []
    fake_sleep.hooks.append(lambda _: seen.append(flow.state))

    assert _reset(flow, "alice@example.com", "NewPass2") is None

    assert plain_directory.find("alice@example.com").credential == "NewPass2"
    # success shown during the revert delay, then back to login/idle
    assert seen[-1].status == AuthStatus(kind=StatusKind.success, message=RESET_SUCCESS)
    assert fake_sleep.calls == [1.0, 2.0]
    assert flow.state == AuthFlowState(mode=AuthMode.login)

    assert _login(flow, "alice@example.com", "Secret1") is None
    assert flow.status.message == "Invalid username or password"
    assert _login(flow, "alice@example.com", "NewPass2") is not None


def test_reset_unknown_email_is_reported(flow):
    _reset(flow, "ghost@example.com", "NewPass2")
    assert flow.status.message == "No account found with this email address"


def test_reset_checks_account_before_password_policy(flow, plain_directory):
    _reset(flow, "ghost@example.com", "weak")
    assert flow.status.message == "No account found with this email address"

    plain_directory.register("alice@example.com", "Alice", "Secret1")
    _reset(flow, "alice@example.com", "weakpass")
    assert flow.status.message == "Password must contain at least one uppercase letter"
    _reset(flow, "alice@example.com", "NewPass2", confirm="NewPass3")
    assert flow.status.message == "Passwords do not match"
    assert plain_directory.find("alice@example.com").credential == "Secret1"


@pytest.mark.parametrize(
    ("password", "message"),
    [
        ("Ab1", "Password must be at least 6 characters long"),
        ("ABCDEF1", "Password must contain at least one lowercase letter"),
        ("abcdef1", "Password must contain at least one uppercase letter"),
        ("Abcdefg", "Password must contain at least one number"),
    ],
)
def test_reset_enforces_each_password_rule(flow, plain_directory, password, message):
    plain_directory.register("alice@example.com", "Alice", "Secret1")

    assert _reset(flow, "alice@example.com", password) is None
    assert flow.status == AuthStatus(kind=StatusKind.failure, message=message)
    assert plain_directory.find("alice@example.com").credential == "Secret1"


def test_concurrent_submit_is_rejected(plain_directory, settings):
    async def scenario():
        gate = asyncio.Event()

        async def blocking_sleep(_seconds):
            await gate.wait()

        flow = AuthFlow(plain_directory, settings=settings, sleep=blocking_sleep)
        flow.edit(email="a@b.co", password="Secret1")
        first = asyncio.create_task(flow.submit())
        await asyncio.sleep(0)

        assert flow.status.is_submitting
        with pytest.raises(TransitionError):
            await flow.submit()
        with pytest.raises(TransitionError):
            flow.switch_mode(AuthMode.signup)

        gate.set()
        await first
        return flow

    flow = asyncio.run(scenario())
    assert flow.status.kind == StatusKind.failure


def test_store_failure_resolves_to_failure(settings, fake_sleep):
    class BrokenDirectory:
        def verify(self, email, password):
            raise RecordStoreError("disk on fire")

    flow = AuthFlow(BrokenDirectory(), settings=settings, sleep=fake_sleep)
    assert _login(flow, "a@b.co", "Secret1") is None
    assert flow.status == AuthStatus(kind=StatusKind.failure, message=STORE_UNAVAILABLE)


def test_logout_resets_flow(flow, plain_directory):
    plain_directory.register("alice@example.com", "Alice", "Secret1")
    _login(flow, "alice@example.com", "Secret1")

    flow.logout()
    assert flow.state == AuthFlowState()


def test_undecodable_store_file_resolves_to_failure(tmp_path, settings, fake_sleep):
    path = tmp_path / "store.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    flow = AuthFlow(AccountDirectory(JsonFileRecordStore(path), PlaintextHasher()), settings=settings, sleep=fake_sleep)

    assert _login(flow, "alice@example.com", "Secret1") is None
    assert flow.status == AuthStatus(kind=StatusKind.failure, message=STORE_UNAVAILABLE)

    # the flow is still usable afterwards
    flow.switch_mode(AuthMode.signup)
    assert flow.status.kind == StatusKind.idle


def test_unwritable_store_file_resolves_to_failure(tmp_path, settings, fake_sleep, handoffs):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    store = JsonFileRecordStore(blocker / "store.json")
    flow = AuthFlow(
        AccountDirectory(store, PlaintextHasher()), settings=settings, sleep=fake_sleep, on_authenticated=handoffs.append
    )

    assert _signup(flow) is None
    assert flow.status == AuthStatus(kind=StatusKind.failure, message=STORE_UNAVAILABLE)
    assert handoffs == []


def test_unexpected_error_never_leaves_flow_submitting(settings, fake_sleep, handoffs):
    class ReadOnlyStore(InMemoryRecordStore):
        def put_all(self, records):
            raise PermissionError("read-only")

    flow = AuthFlow(
        AccountDirectory(ReadOnlyStore(), PlaintextHasher()),
        settings=settings,
        sleep=fake_sleep,
        on_authenticated=handoffs.append,
    )

    assert _signup(flow) is None
    assert flow.status == AuthStatus(kind=StatusKind.failure, message=UNEXPECTED_FAILURE)
    assert handoffs == []
    flow.edit(password="Secret2")
    assert not flow.status.is_submitting


def test_mode_switch_during_handoff_cancels_it(flow, fake_sleep, handoffs, plain_directory):
    def leave_on_handoff(_seconds):
        if len(fake_sleep.calls) == 2:
            flow.switch_mode(AuthMode.login)

    fake_sleep.hooks.append(leave_on_handoff)

    assert _signup(flow) is None
    assert handoffs == []
    assert flow.state == AuthFlowState(mode=AuthMode.login)
    # the account itself was created before the hand-off delay
    assert plain_directory.find("alice@example.com") is not None


def test_logout_during_handoff_cancels_it(flow, fake_sleep, handoffs, plain_directory):
    plain_directory.register("alice@example.com", "Alice", "Secret1")

    def logout_on_handoff(_seconds):
        if len(fake_sleep.calls) == 2:
            flow.logout()

    fake_sleep.hooks.append(logout_on_handoff)

    assert _login(flow, "alice@example.com", "Secret1") is None
    assert handoffs == []
    assert flow.state == AuthFlowState()
