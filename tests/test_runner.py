from __future__ import annotations

import pytest

from chainrun.errors import MissingParam, UnknownScript
from chainrun.loader import ConfigLoader
from chainrun.runner import ScriptRunner, parse_chain


@pytest.fixture
def make_runner(script_dir, make_ctx, quiet_console):
    def _make(env=None, **kwargs) -> ScriptRunner:
        return ScriptRunner(ConfigLoader([script_dir]), make_ctx(env=env), console=quiet_console, **kwargs)

    return _make


@pytest.fixture
def runner(make_runner) -> ScriptRunner:
    return make_runner()


def test_capture_flows_into_later_command(runner, write_script, spawner, capsys) -> None:
    spawner.ok("echo hello", stdout="hello\n")
    write_script(
        "greet",
        [
            {"command": "echo hello", "capture": "greeting"},
            {"command": "echo Got: ${greeting}"},
        ],
    )

    assert runner.run("greet") == 0
    assert spawner.commands == ["echo hello", "echo Got: hello"]

    out = capsys.readouterr().out
    assert "RESULTS: greet" in out
    assert "status: COMPLETED" in out


def test_tolerated_failure_completes_with_warning(runner, write_script, spawner, capsys) -> None:
    spawner.fail("exit 1")
    write_script(
        "lenient",
        [
            {"command": "exit 1", "options": {"proceed_on_failure": True}},
            {"command": "echo after"},
        ],
    )

    assert runner.run("lenient") == 0
    assert spawner.commands == ["exit 1", "echo after"]
    assert "WARNING [lenient] exit 1" in capsys.readouterr().out


def test_fatal_failure_exits_one(runner, write_script, spawner, capsys) -> None:
    spawner.fail("make build")
    write_script("build", [{"command": "make build"}, {"command": "make ship"}])

    assert runner.run("build") == 1
    assert spawner.commands == ["make build"]

    out = capsys.readouterr().out
    assert "status: ABORTED" in out
    assert "aborted at step 1" in out


def test_empty_script_succeeds(runner, write_script, spawner) -> None:
    write_script("nothing", [])

    assert runner.run("nothing") == 0
    assert spawner.calls == []


def test_params_bind_in_order(runner, write_script, spawner) -> None:
    write_script("deploy", [{"command": "ship ${env} ${region}"}], params=["env", "region"])

    assert runner.run("deploy", ["prod", "eu"]) == 0
    assert spawner.commands == ["ship prod eu"]


@pytest.mark.parametrize("args", [[], ["a", "b"]])
def test_param_count_mismatch_is_a_config_error(runner, write_script, spawner, args) -> None:
    write_script("one", [{"command": "echo ${x}"}], params=["x"])

    assert runner.run("one", args) == 2
    assert spawner.calls == []


def test_missing_secret_runs_nothing(runner, write_script, spawner, capsys) -> None:
    write_script(
        "secret",
        [{"command": "login ${token}"}],
        secrets=[{"name": "token", "env_var": "API_TOKEN"}],
    )

    assert runner.run("secret") == 2
    assert spawner.calls == []
    assert "MissingSecret" in capsys.readouterr().err


def test_present_secret_is_substituted(make_runner, write_script, spawner) -> None:
    write_script(
        "secret",
        [{"command": "login ${token}"}],
        secrets=[{"name": "token", "env_var": "API_TOKEN"}],
    )

    assert make_runner(env={"API_TOKEN": "s3cr3t"}).run("secret") == 0
    assert spawner.commands == ["login s3cr3t"]


def test_unknown_script(runner, spawner) -> None:
    assert runner.run("nope") == 2
    assert spawner.calls == []

    with pytest.raises(UnknownScript):
        runner.invoke("nope")


def test_invoke_propagates_pre_run_errors(runner, write_script) -> None:
    write_script("one", [{"command": "echo ${x}"}], params=["x"])

    with pytest.raises(MissingParam):
        runner.invoke("one")


def test_shortcut_resolves_to_script(runner, script_dir, write_script, spawner) -> None:
    (script_dir / ".shortcuts.yaml").write_text("shortcuts:\n  g: greet\n", encoding="utf-8")
    write_script("greet", [{"command": "echo hi"}])

    assert runner.run("g") == 0
    assert spawner.commands == ["echo hi"]


# ----------------------------------------------------------------------
# Chaining
# ----------------------------------------------------------------------

def test_chained_script_receives_args(runner, write_script, spawner) -> None:
    write_script("inner", [{"command": "echo hi ${who}"}], params=["who"])
    write_script("outer", [{"command": "chainrun inner world"}, {"command": "echo done"}])

    assert runner.run("outer") == 0
    assert spawner.commands == ["echo hi world", "echo done"]


def test_run_subcommand_form_is_chained(runner, write_script, spawner) -> None:
    write_script("inner", [{"command": "echo inner"}])
    write_script("outer", [{"command": "chainrun run inner"}])

    assert runner.run("outer") == 0
    assert spawner.commands == ["echo inner"]


def test_same_script_twice_in_sequence_is_not_a_cycle(runner, write_script, spawner) -> None:
    write_script("inner", [{"command": "echo inner"}])
    write_script("outer", [{"command": "chainrun inner"}, {"command": "chainrun inner"}])

    assert runner.run("outer") == 0
    assert spawner.commands == ["echo inner", "echo inner"]


def test_direct_cycle_is_detected(runner, write_script, spawner, capsys) -> None:
    write_script("loop", [{"command": "chainrun loop"}, {"command": "echo never"}])

    assert runner.run("loop") == 2
    assert spawner.calls == []
    assert "loop -> loop" in capsys.readouterr().err


def test_transitive_cycle_aborts_every_level(runner, write_script, spawner) -> None:
    write_script("a", [{"command": "chainrun b"}, {"command": "echo after-a"}])
    write_script("b", [{"command": "chainrun a"}, {"command": "echo after-b"}])

    assert runner.run("a") == 2
    assert spawner.calls == []


def test_cycle_through_shortcut_is_detected(runner, script_dir, write_script, spawner) -> None:
    (script_dir / ".shortcuts.yaml").write_text("shortcuts:\n  s: a\n", encoding="utf-8")
    write_script("a", [{"command": "chainrun s"}])

    assert runner.run("a") == 2
    assert spawner.calls == []


def test_cycle_is_not_softened_by_proceed_on_failure(runner, write_script, spawner) -> None:
    write_script("loop", [{"command": "chainrun loop", "options": {"proceed_on_failure": True}}, {"command": "echo never"}])

    assert runner.run("loop") == 2
    assert spawner.calls == []


def test_chained_failure_fails_the_caller(runner, write_script, spawner) -> None:
    spawner.fail("false")
    write_script("inner", [{"command": "false"}])
    write_script("outer", [{"command": "chainrun inner"}, {"command": "echo never"}])

    assert runner.run("outer") == 1
    assert spawner.commands == ["false"]


def test_chained_failure_can_be_tolerated(runner, write_script, spawner) -> None:
    spawner.fail("false")
    write_script("inner", [{"command": "false"}])
    write_script(
        "outer",
        [{"command": "chainrun inner", "options": {"proceed_on_failure": True}}, {"command": "echo after"}],
    )

    assert runner.run("outer") == 0
    assert spawner.commands == ["false", "echo after"]


def test_parallel_lanes_may_chain_the_same_script(runner, write_script, spawner) -> None:
    write_script("inner", [{"command": "echo inner"}])
    write_script("outer", [[{"command": "chainrun inner"}, {"command": "chainrun inner"}]])

    assert runner.run("outer") == 0
    assert spawner.commands == ["echo inner", "echo inner"]


# ----------------------------------------------------------------------
# parse_chain
# ----------------------------------------------------------------------

@pytest.mark.parametrize(
    "line, expected",
    [
        ("chainrun deploy", ("deploy", [])),
        ("chainrun deploy prod 'two words'", ("deploy", ["prod", "two words"])),
        ("chainrun run deploy prod", ("deploy", ["prod"])),
        ("/usr/local/bin/chainrun deploy", ("deploy", [])),
    ],
)
def test_parse_chain_recognises_chained_commands(line, expected) -> None:
    assert parse_chain(line) == expected


@pytest.mark.parametrize(
    "line",
    [
        "echo chainrun deploy",
        "chainrun",
        "chainrun list",
        "chainrun init --global",
        "chainrun create deploy -s d",
        "chainrun help",
        "chainrun v",
        "chainrun --version",
        "chainrun run",
        "chainrun 'unbalanced",
        "",
    ],
)
def test_parse_chain_ignores_everything_else(line) -> None:
    assert parse_chain(line) is None
