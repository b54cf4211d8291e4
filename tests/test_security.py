from vibeflow.core.security import (
    generate_state,
    read_session_value,
    sign_session_value,
    states_match,
)


def test_generate_state_is_random_and_sized():
    states = {generate_state() for _ in range(50)}
    assert len(states) == 50
    assert all(len(s) == 16 for s in states)


def test_states_match():
    assert states_match("abc", "abc")
    assert not states_match("abc", "abd")
    assert not states_match(None, "abc")
    assert not states_match("", "")


def test_signed_value_round_trip():
    assert read_session_value(sign_session_value("BQD-token", 3600)) == "BQD-token"


def test_tampered_value_is_rejected():
    signed = sign_session_value("BQD-token", 3600)
    head, payload, signature = signed.split(".")
    tampered = ".".join([head, payload, signature[::-1]])
    assert read_session_value(tampered) is None
    assert read_session_value("plain-token") is None
    assert read_session_value(None) is None


def test_expired_value_is_rejected():
    assert read_session_value(sign_session_value("BQD-token", -10)) is None
