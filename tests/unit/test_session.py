"""Unit tests for session login state."""

from __future__ import annotations

from fishbowl_link.session import Session, SessionPhase


def test_new_session_is_disconnected():
    session = Session()
    assert session.phase is SessionPhase.DISCONNECTED
    assert session.session_key == ""
    assert session.logged_in is False


def test_connect_then_login():
    session = Session()
    session.mark_connected()
    assert session.phase is SessionPhase.CONNECTED_LOGGED_OUT

    session.mark_logged_in("K1", 7)
    assert session.phase is SessionPhase.CONNECTED_LOGGED_IN
    assert session.session_key == "K1"
    assert session.user_id == 7


def test_empty_key_does_not_count_as_logged_in():
    session = Session()
    session.mark_connected()
    session.mark_logged_in("", 7)
    assert session.logged_in is False


def test_logout_clears_ticket():
    session = Session()
    session.mark_connected()
    session.mark_logged_in("K1", 7)

    session.mark_logged_out("inactivity")

    assert session.phase is SessionPhase.CONNECTED_LOGGED_OUT
    assert session.session_key == ""
    assert session.user_id is None


def test_disconnect_clears_ticket():
    session = Session()
    session.mark_connected()
    session.mark_logged_in("K1", 7)

    session.mark_disconnected()

    assert session.phase is SessionPhase.DISCONNECTED
    assert session.session_key == ""


def test_reconnect_starts_logged_out():
    session = Session()
    session.mark_connected()
    session.mark_logged_in("K1", 7)
    session.mark_connected()
    assert session.phase is SessionPhase.CONNECTED_LOGGED_OUT


def test_password_not_in_repr():
    assert "hunter2" not in repr(Session(password="hunter2"))
