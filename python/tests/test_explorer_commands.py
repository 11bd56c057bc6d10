"""Unit tests for vcml-explorer commands."""

from __future__ import annotations

import json

import pytest
from prompt_toolkit.completion import CompleteEvent
from prompt_toolkit.document import Document

from vcml_explorer import cli
from vcml_explorer.commands import build_registry
from vcml_explorer.completion import ExplorerCompleter
from vcml_explorer.context import ExplorerContext
from vcml_explorer.repl import ExplorerREPL
from vcmlsession import RegistryConfig, SessionRegistry

URI = "localhost:4000:jan:/opt/sim/vp"


def _context(tmp_path, factory, *, json_output: bool = False) -> ExplorerContext:
    config = RegistryConfig(announce_dir=tmp_path)
    registry = SessionRegistry(config, transport_factory=factory)
    return ExplorerContext(config=config, json_output=json_output, registry=registry)


@pytest.fixture
def ctx(tmp_path, transport_factory):
    context = _context(tmp_path, transport_factory)
    yield context
    context.shutdown()


@pytest.fixture
def repl(ctx):
    return ExplorerREPL(ctx, build_registry())


def test_sessions_command_scans_announcements(repl, ctx, tmp_path, capsys):
    (tmp_path / "vcml_session_42").write_text(URI + "\n")
    (tmp_path / "vcml_session_43").write_text("broken\n")
    assert repl.dispatch("sessions") == 0
    out = capsys.readouterr().out
    assert "vp" in out
    assert "localhost:4000" in out
    assert len(ctx.registry.sessions) == 1


def test_sessions_command_json(tmp_path, transport_factory, capsys):
    ctx = _context(tmp_path, transport_factory, json_output=True)
    (tmp_path / "vcml_session_42").write_text(URI + "\n")
    repl = ExplorerREPL(ctx, build_registry())
    assert repl.dispatch("sessions") == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "ok"
    assert payload["result"]["added"] == [URI]
    assert payload["result"]["sessions"][0]["state"] == "disconnected"
    assert payload["result"]["current"] is None


def test_add_select_and_connect(repl, ctx, capsys):
    assert repl.dispatch(f"add {URI} --select --connect") == 0
    out = capsys.readouterr().out
    assert "Added jan/vp at localhost:4000" in out
    assert ctx.current is not None and ctx.current.is_connected
    assert repl.prompt_text() == "vcml[vp:idle]> "


def test_add_rejects_invalid_uri(repl, ctx, capsys):
    assert repl.dispatch("add nohost") == 1
    assert "error: invalid URI: nohost" in capsys.readouterr().out
    assert ctx.registry.sessions == ()


def test_select_by_index_and_name(repl, ctx, capsys):
    repl.dispatch("add localhost:4000:jan:/opt/a")
    repl.dispatch("add localhost:4001:jan:/opt/b")
    assert repl.dispatch("select 2") == 0
    assert ctx.current.uri == "localhost:4001:jan:/opt/b"
    assert repl.dispatch("use a") == 0
    assert ctx.current.uri == "localhost:4000:jan:/opt/a"
    assert repl.dispatch("select nothing") == 1
    assert "no session matches 'nothing'" in capsys.readouterr().out


def test_commands_require_a_session(repl, capsys):
    assert repl.dispatch("step") == 1
    assert "no session selected" in capsys.readouterr().out


def test_step_command_counts(tmp_path, transport_factory, capsys):
    ctx = _context(tmp_path, transport_factory, json_output=True)
    repl = ExplorerREPL(ctx, build_registry())
    repl.dispatch(f"add {URI} --select")
    capsys.readouterr()
    assert repl.dispatch("step 3") == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["result"]["steps"] == 3
    assert payload["result"]["time"] == pytest.approx(0.000003)
    assert transport_factory.last.verbs("command").count("s") == 3


def test_continue_stop_and_list_guard(repl, ctx, transport_factory, capsys):
    repl.dispatch(f"add {URI} --select --connect")
    assert repl.dispatch("continue") == 0
    assert ctx.current.is_running
    assert repl.dispatch("list") == 1
    assert "is running" in capsys.readouterr().out
    assert repl.dispatch("stop") == 0
    assert not ctx.current.is_running
    assert ("byte", "a") in transport_factory.last.log


def test_list_top_level_and_object(repl, capsys):
    repl.dispatch(f"add {URI} --select --connect")
    capsys.readouterr()
    assert repl.dispatch("list") == 0
    out = capsys.readouterr().out
    assert "system/" in out
    assert "clock" in out
    assert repl.dispatch("ls system.cpu") == 0
    out = capsys.readouterr().out
    assert "system.cpu [processor]" in out
    assert "attributes: clkrst, pc" in out
    assert "commands  : dump, disas" in out
    assert repl.dispatch("list system.nothing") == 1
    assert "no object named 'system.nothing'" in capsys.readouterr().out


def test_exec_prints_reply(tmp_path, make_factory, capsys):
    factory = make_factory({"e,system.cpu,dump,0\\,4": "OK,r0:1\\,2"})
    ctx = _context(tmp_path, factory)
    repl = ExplorerREPL(ctx, build_registry())
    repl.dispatch(f"add {URI} --select --connect")
    capsys.readouterr()
    assert repl.dispatch('exec system.cpu dump "0,4"') == 0
    assert capsys.readouterr().out.strip() == "r0:1,2"


def test_exec_error_evicts_session(tmp_path, make_factory, capsys):
    factory = make_factory({"e,system.cpu,dump": "ERROR,not stopped"})
    ctx = _context(tmp_path, factory)
    repl = ExplorerREPL(ctx, build_registry())
    repl.dispatch(f"add {URI} --select --connect")
    capsys.readouterr()
    assert repl.dispatch("exec system.cpu dump") == 2
    out = capsys.readouterr().out
    assert "exec failed: command 'e,system.cpu,dump' returned error: not stopped" in out
    assert f"note: session vp ({URI}) removed" in out
    assert ctx.current is None
    assert ctx.registry.sessions == ()


def test_connect_failure_reports_and_removes(repl, ctx, transport_factory, capsys):
    transport_factory.refuse = True
    repl.dispatch(f"add {URI} --select")
    assert repl.dispatch("connect") == 2
    out = capsys.readouterr().out
    assert "connect failed" in out
    assert "refused" in out
    assert ctx.registry.sessions == ()


def test_quit_sim_and_remove(repl, ctx, transport_factory, capsys):
    repl.dispatch("add localhost:4000:jan:/opt/a --select --connect")
    repl.dispatch("add localhost:4001:jan:/opt/b")
    assert repl.dispatch("kill") == 0
    assert "x" in transport_factory.last.verbs("send")
    assert [session.name for session in ctx.registry.sessions] == ["b"]
    assert repl.dispatch("remove b") == 0
    assert ctx.registry.sessions == ()


def test_status_without_session(repl, capsys):
    assert repl.dispatch("status") == 0
    assert "No session selected (0 known" in capsys.readouterr().out


def test_status_with_session(repl, capsys):
    repl.dispatch(f"add {URI} --select --connect")
    capsys.readouterr()
    assert repl.dispatch("info") == 0
    out = capsys.readouterr().out
    assert "Session: jan/vp at localhost:4000 (idle)" in out
    assert "executable: /opt/sim/vp" in out


def test_dispatch_reports_unknown_and_parse_errors(repl, capsys):
    assert repl.dispatch("frobnicate") == 1
    assert "Unknown command: frobnicate" in capsys.readouterr().out
    assert repl.dispatch('exec "unterminated') == 1
    assert "Parse error" in capsys.readouterr().out
    assert repl.dispatch("") == 0


def test_help_lists_commands(repl, capsys):
    assert repl.dispatch("help") == 0
    out = capsys.readouterr().out
    for name in ("sessions", "connect", "continue", "stop", "step", "list", "exec", "exit"):
        assert name in out
    assert repl.dispatch("help quit-sim") == 0
    assert "aliases: kill" in capsys.readouterr().out


def test_exit_disconnects_everything(repl, ctx, transport_factory):
    repl.dispatch(f"add {URI} --select --connect")
    with pytest.raises(SystemExit):
        repl.dispatch("exit")
    assert transport_factory.last.closed
    assert ctx.registry.sessions == ()


def test_aliases_resolve_before_lookup(repl, ctx, capsys):
    ctx.set_alias("go", "continue")
    assert ctx.resolve_alias("go") == "continue"
    assert repl.dispatch("go") == 1
    assert "no session selected" in capsys.readouterr().out


def test_completer_offers_commands_sessions_and_objects(repl, ctx):
    repl.dispatch(f"add {URI} --select --connect")
    completer = ExplorerCompleter(ctx, build_registry())

    def complete(text):
        return [c.text for c in completer.get_completions(Document(text), CompleteEvent())]

    assert "select" in complete("sel")
    assert complete("select v") == ["vp"]
    assert complete("list sys") == ["system"]
    assert complete("list system.c") == ["system.cpu"]


def test_cli_runs_commands_non_interactively(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("VCML_ANNOUNCE_DIR", raising=False)
    rc = cli.main(
        [
            "--announce-dir",
            str(tmp_path),
            "-c",
            "add localhost:4000:jan:/opt/vp --select",
            "-c",
            "status",
        ]
    )
    assert rc == 0
    out = capsys.readouterr().out
    assert "Session: jan/vp at localhost:4000 (disconnected)" in out


def test_cli_stops_at_first_failure(tmp_path, capsys):
    rc = cli.main(["--announce-dir", str(tmp_path), "--no-scan", "-c", "select 1", "-c", "status"])
    assert rc == 1
    assert "Session:" not in capsys.readouterr().out


def test_alias_command_defines_and_clears(repl, ctx, capsys):
    assert repl.dispatch("alias go continue") == 0
    assert "go -> continue" in capsys.readouterr().out
    assert repl.dispatch("alias") == 0
    assert "go=continue" in capsys.readouterr().out
    assert repl.dispatch("alias --clear") == 0
    assert ctx.aliases == {}


def test_continuation_lines_are_joined(repl, ctx):
    assert repl.feed("add localhost:4000 \\") is None
    assert repl.prompt_text() == "...> "
    assert repl.feed("  --select") == "add localhost:4000 --select"
    assert repl.prompt_text() == "vcml> "
    assert repl.toolbar_text() == " 0 session(s) known, none selected"


def test_object_completion_failure_evicts_session(tmp_path, make_factory, capsys):
    factory = make_factory({"l": "!timeout"})
    ctx = _context(tmp_path, factory)
    repl = ExplorerREPL(ctx, build_registry())
    repl.dispatch(f"add {URI} --select --connect")
    assert ctx.current is not None and ctx.current.is_connected
    assert ctx.object_completions("sys") == []
    assert ctx.registry.get(URI) is None
    assert ctx.current is None
    assert factory.last.closed
    assert "timed out" in ctx.registry.last_error
