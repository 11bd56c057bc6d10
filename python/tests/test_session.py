import pytest

from vcmlsession import InvalidURIError, ProtocolError, Session, SessionState, TransportConfig, TransportError
from vcmlsession.session import CONT, INTERRUPT, QUIT, STEP, TIME, UNKNOWN, parse_uri


def _session(factory, uri="localhost:4444:jan:/opt/sim/bin/soc-sim"):
    return Session(uri, transport_factory=factory)


# ----------------------------------------------------------------------
# URI handling
# ----------------------------------------------------------------------


def test_parse_full_uri():
    info = parse_uri("simhost:5000:jan:/home/jan/build/vp/bin/my-vp")
    assert info.host == "simhost"
    assert info.port == 5000
    assert info.user == "jan"
    assert info.executable == "/home/jan/build/vp/bin/my-vp"
    assert info.name == "my-vp"


def test_parse_minimal_uri_uses_unknown_markers():
    info = parse_uri("localhost:1234")
    assert info.user == UNKNOWN
    assert info.executable == UNKNOWN
    assert info.name == UNKNOWN


def test_windows_executable_keeps_drive_colon():
    info = parse_uri("pc:4000:me:C:\\sims\\vp.exe")
    assert info.executable == "C:\\sims\\vp.exe"
    assert info.name == "vp.exe"


@pytest.mark.parametrize(
    "uri",
    ["", "localhost", ":4444", "localhost:abc", "localhost:0", "localhost:-3", "localhost:+5", "localhost:4_000", "localhost: 4000"],
)
def test_invalid_uris_are_rejected(uri):
    with pytest.raises(InvalidURIError):
        Session(uri)


def test_sessions_are_equal_by_uri(transport_factory):
    a = _session(transport_factory)
    b = _session(transport_factory)
    other = _session(transport_factory, "localhost:4445")
    assert a == b
    assert hash(a) == hash(b)
    assert a != other
    a.connect()
    assert a == b


def test_str_mentions_user_name_and_endpoint(transport_factory):
    session = _session(transport_factory)
    assert str(session) == "jan/soc-sim at localhost:4444"


def test_transport_config_carries_endpoint_and_timeouts(transport_factory):
    session = Session(
        "simhost:4444",
        transport_factory=transport_factory,
        transport_config=TransportConfig(read_timeout=0.25, connect_timeout=0.5),
    )
    session.connect()
    config = transport_factory.configs[0]
    assert (config.host, config.port) == ("simhost", 4444)
    assert config.read_timeout == 0.25
    assert config.connect_timeout == 0.5


# ----------------------------------------------------------------------
# State machine
# ----------------------------------------------------------------------


def test_initial_state_is_disconnected(transport_factory):
    session = _session(transport_factory)
    assert session.state is SessionState.DISCONNECTED
    assert not session.is_connected
    assert not session.is_running
    assert session.time == 0.0
    assert transport_factory.opened == []


def test_connect_is_idempotent(transport_factory):
    session = _session(transport_factory)
    session.connect()
    session.connect()
    assert len(transport_factory.opened) == 1
    assert session.state is SessionState.IDLE
    assert transport_factory.last.verbs("command") == [TIME]


def test_connect_failure_leaves_session_disconnected(transport_factory):
    transport_factory.refuse = True
    session = _session(transport_factory)
    with pytest.raises(TransportError):
        session.connect()
    assert session.state is SessionState.DISCONNECTED


def test_connect_closes_transport_when_time_query_fails(make_factory):
    factory = make_factory({"t": "ERROR,no time"})
    session = _session(factory)
    with pytest.raises(ProtocolError) as excinfo:
        session.connect()
    assert excinfo.value.remote_error == "no time"
    assert session.state is SessionState.DISCONNECTED
    assert factory.last.closed


def test_connect_rejects_non_numeric_time(make_factory):
    session = _session(make_factory({"t": "OK,soon"}))
    with pytest.raises(ProtocolError):
        session.connect()
    assert not session.is_connected


def test_disconnect_closes_transport(transport_factory):
    session = _session(transport_factory)
    session.disconnect()
    session.connect()
    session.disconnect()
    session.disconnect()
    assert transport_factory.last.close_count == 1
    assert session.state is SessionState.DISCONNECTED


def test_continue_invalidates_hierarchy(transport_factory):
    session = _session(transport_factory)
    session.connect()
    assert [m.name for m in session.get_top_level_objects()] == ["system", "clock"]
    session.continue_simulation()
    assert session.state is SessionState.RUNNING
    assert session.get_top_level_objects() is None
    assert session.find_object("system") is None
    assert transport_factory.last.verbs("send") == [CONT]


def test_continue_is_noop_unless_idle(transport_factory):
    session = _session(transport_factory)
    session.continue_simulation()
    assert session.state is SessionState.DISCONNECTED
    session.connect()
    session.continue_simulation()
    session.continue_simulation()
    assert transport_factory.last.verbs("send") == [CONT]


def test_stop_sends_interrupt_and_requeries_time(transport_factory):
    session = _session(transport_factory)
    session.connect()
    session.continue_simulation()
    session.stop_simulation()
    transport = transport_factory.last
    assert ("byte", INTERRUPT) in transport.log
    assert transport.verbs("command") == [TIME, TIME]
    assert session.state is SessionState.IDLE
    assert session.time == pytest.approx(0.000001)


def test_stop_with_bad_reply_keeps_running(make_factory):
    factory = make_factory(recv_replies=["ERROR,busy"])
    session = _session(factory)
    session.connect()
    session.continue_simulation()
    with pytest.raises(ProtocolError) as excinfo:
        session.stop_simulation()
    assert "ERROR,busy" in str(excinfo.value)
    assert session.is_running
    assert factory.last.verbs("command") == [TIME]


def test_stop_is_noop_when_idle(transport_factory):
    session = _session(transport_factory)
    session.connect()
    session.stop_simulation()
    assert transport_factory.last.verbs("byte") == []


def test_step_updates_time_and_rebuilds_hierarchy(transport_factory):
    session = _session(transport_factory)
    session.connect()
    first = session.find_object("system.cpu")
    generation = session.hierarchy_generation
    session.step_simulation()
    assert session.time == pytest.approx(0.000001)
    second = session.find_object("system.cpu")
    assert second is not first
    assert session.hierarchy_generation == generation + 1
    assert STEP in transport_factory.last.verbs("command")


def test_step_error_propagates(make_factory):
    session = _session(make_factory({"s": "ERROR,cannot step"}))
    session.connect()
    with pytest.raises(ProtocolError):
        session.step_simulation()


def test_step_is_noop_while_running(transport_factory):
    session = _session(transport_factory)
    session.connect()
    session.continue_simulation()
    session.step_simulation()
    assert STEP not in transport_factory.last.verbs("command")


def test_quit_stops_then_disconnects(transport_factory):
    session = _session(transport_factory)
    session.connect()
    session.continue_simulation()
    session.quit_simulation()
    transport = transport_factory.last
    assert transport.verbs("send") == [CONT, QUIT]
    assert ("byte", INTERRUPT) in transport.log
    assert transport.closed
    assert session.state is SessionState.DISCONNECTED


def test_quit_is_noop_when_disconnected(transport_factory):
    session = _session(transport_factory)
    session.quit_simulation()
    assert transport_factory.opened == []


def test_refresh_requeries_time(transport_factory):
    session = _session(transport_factory)
    session.connect()
    session.refresh()
    assert session.time == pytest.approx(0.000001)


def test_hierarchy_unavailable_when_disconnected(transport_factory):
    session = _session(transport_factory)
    assert session.get_top_level_objects() is None
    assert session.find_object("system") is None


def test_hierarchy_is_loaded_lazily_once(transport_factory):
    session = _session(transport_factory)
    session.connect()
    session.get_top_level_objects()
    session.get_top_level_objects()
    cpu = session.find_object("system.cpu")
    assert cpu is not None and cpu.kind == "processor"
    assert transport_factory.last.verbs("command").count("l") == 1
