import sys

import pytest
from click.testing import CliRunner
from loguru import logger
from regexp_or_gate import cli
from regexp_or_gate.errors import NoMatchExhaustedError, PendingExhaustedError, TransportError
from regexp_or_gate.models import Classification, GateEvaluation, Verdict
from regexp_or_gate.or_gate import OrGate

ARGS = [
    "--regexp", "wait-2.*",
    "--base-url", "https://api.github.com",
    "--owner", "octo",
    "--repo", "demo",
    "--workflow-run-id", "42",
    "--github-token", "secret",
    "--outer-retry-limit", "5",
    "--outer-retry-delay", "60",
]


def _args(**overrides):
    args = list(ARGS)
    for option, value in overrides.items():
        flag = "--" + option.replace("_", "-")
        args[args.index(flag) + 1] = value
    return args


@pytest.fixture(autouse=True)
def restore_logger():
    """The command replaces the loguru sinks; put the default one back."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def gate_calls(monkeypatch):
    """Replace the polling loop with a scripted outcome."""
    calls = []
    outcome = {}

    async def fake_run(self):
        calls.append(self)
        if "error" in outcome:
            raise outcome["error"]
        return GateEvaluation(
            attempt=1,
            matched=2,
            classification=Classification(succeeded=1, failed=1),
            verdict=outcome.get("verdict", Verdict.success),
        )

    monkeypatch.setattr(OrGate, "run", fake_run)
    return calls, outcome


def test_success_exits_zero(gate_calls):
    calls, _ = gate_calls

    result = CliRunner().invoke(cli.gate_command, ARGS)

    assert result.exit_code == 0
    gate = calls[0]
    assert gate.pattern.pattern == "wait-2.*"
    assert gate.outer_policy.max_attempts == 5
    assert gate.outer_policy.delay_seconds == 60
    assert gate.inner_policy.max_attempts == 12
    assert gate.client.run.jobs_url.endswith("/repos/octo/demo/actions/runs/42/jobs")


def test_failure_exits_one(gate_calls):
    _, outcome = gate_calls
    outcome["verdict"] = Verdict.failure

    result = CliRunner().invoke(cli.gate_command, ARGS)

    assert result.exit_code == 1


@pytest.mark.parametrize(
    "error",
    [
        NoMatchExhaustedError("no match", attempts=12),
        PendingExhaustedError("still pending", attempts=5),
        TransportError("boom", status=500),
    ],
)
def test_fatal_errors_exit_one(gate_calls, error):
    _, outcome = gate_calls
    outcome["error"] = error

    result = CliRunner().invoke(cli.gate_command, ARGS)

    assert result.exit_code == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"regexp": ""},
        {"owner": " "},
        {"workflow_run_id": ""},
        {"outer_retry_limit": "ten"},
        {"outer_retry_delay": "1.5"},
    ],
)
def test_invalid_configuration_exits_before_polling(gate_calls, overrides):
    calls, _ = gate_calls

    result = CliRunner().invoke(cli.gate_command, _args(**overrides))

    assert result.exit_code == 1
    assert calls == []


def test_invalid_pattern_exits_before_polling(gate_calls):
    calls, _ = gate_calls

    result = CliRunner().invoke(cli.gate_command, _args(regexp="wait-("))

    assert result.exit_code == 1
    assert calls == []


def test_token_is_read_from_environment(gate_calls):
    calls, _ = gate_calls
    args = list(ARGS)
    del args[args.index("--github-token") : args.index("--github-token") + 2]

    result = CliRunner().invoke(cli.gate_command, args, env={"GITHUB_TOKEN": "from-env"})

    assert result.exit_code == 0
    assert calls[0].client.headers["Authorization"] == "Bearer from-env"


def test_main_maps_usage_errors_to_exit_one(monkeypatch):
    monkeypatch.setattr("sys.argv", ["regexp-or-gate", "--no-such-option"])

    with pytest.raises(SystemExit) as excinfo:
        cli.main()

    assert excinfo.value.code == 1


def test_log_inputs_hides_token(gate_calls, tmp_path):
    log_file = tmp_path / "gate.log"

    result = CliRunner().invoke(cli.gate_command, ARGS + ["--log-file", str(log_file)])

    assert result.exit_code == 0
    text = log_file.read_text()
    assert "*** (hidden for security)" in text
    assert "secret" not in text
    assert "wait-2.*" in text


def test_failure_reports_failed_and_unrecognized_counts(gate_calls, tmp_path):
    _, outcome = gate_calls
    outcome["verdict"] = Verdict.failure
    log_file = tmp_path / "gate.log"

    result = CliRunner().invoke(cli.gate_command, ARGS + ["--log-file", str(log_file)])

    assert result.exit_code == 1
    assert "1 failed, 0 with unrecognized status" in log_file.read_text()


def test_unwritable_log_file_is_a_configuration_error(gate_calls, tmp_path):
    calls, _ = gate_calls
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    result = CliRunner().invoke(
        cli.gate_command, ARGS + ["--log-file", str(blocker / "gate.log")]
    )

    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert calls == []
