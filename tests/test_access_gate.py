"""
Tests for the passcode gate.
"""

import pytest

from focusflow.domain.errors import PasscodeError
from focusflow.domain.models import AppSettings, default_state
from focusflow.infra.repository import SessionStorage
from focusflow.services.access_gate import AUTH_KEY, AccessGate
from focusflow.services.command_processor import apply


@pytest.fixture
def storage():
    return SessionStorage()


@pytest.fixture
def settings_holder():
    return {"settings": AppSettings(passcode="424242")}


@pytest.fixture
def gate(settings_holder, storage):
    return AccessGate(lambda: settings_holder["settings"], storage)


def test_starts_locked(gate):
    assert not gate.is_authenticated


def test_correct_code_opens_the_gate(gate, storage):
    assert gate.submit("424242") is True
    assert gate.is_authenticated
    assert storage.get(AUTH_KEY) == "true"


def test_wrong_code_keeps_it_closed(gate):
    assert gate.submit("123456") is False
    assert gate.submit("") is False
    assert not gate.is_authenticated


def test_lock(gate):
    gate.submit("424242")
    gate.lock()
    assert not gate.is_authenticated


def test_fresh_session_storage_starts_locked(gate, settings_holder):
    gate.submit("424242")
    restarted = AccessGate(lambda: settings_holder["settings"], SessionStorage())
    assert not restarted.is_authenticated


def test_default_passcode():
    gate = AccessGate(AppSettings, SessionStorage())
    assert gate.passcode == "123456"
    assert gate.submit("123456")


def test_gate_reads_live_settings(gate, settings_holder):
    settings_holder["settings"] = AppSettings(passcode="000111")
    assert not gate.submit("424242")
    assert gate.submit("000111")


class TestChangePasscode:

    def test_valid_change_builds_settings_command(self, gate):
        command = gate.change_passcode("424242", "987654", "987654")

        state = apply(default_state(), command)
        assert state.settings.passcode == "987654"

    def test_wrong_current_code(self, gate):
        with pytest.raises(PasscodeError, match="Current passcode is incorrect"):
            gate.change_passcode("000000", "987654", "987654")

    @pytest.mark.parametrize("new", ["12345", "1234567", "12a456", ""])
    def test_new_code_must_be_six_digits(self, gate, new):
        with pytest.raises(PasscodeError, match="exactly 6 digits"):
            gate.change_passcode("424242", new, new)

    def test_confirmation_must_match(self, gate):
        with pytest.raises(PasscodeError, match="do not match"):
            gate.change_passcode("424242", "987654", "987655")
