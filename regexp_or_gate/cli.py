import asyncio
import sys

import click
from loguru import logger
from regexp_or_gate.errors import ConfigurationError, OrGateError
from regexp_or_gate.jobs_client import ActionsJobsClient
from regexp_or_gate.models import GateConfig, Verdict
from regexp_or_gate.or_gate import OrGate

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def configure_logging(verbose: bool, log_file: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")
    if log_file:
        try:
            logger.add(log_file, level="DEBUG")
        except OSError as e:
            raise ConfigurationError(f"Cannot write log file {log_file!r}: {e}") from e


def log_inputs(config: GateConfig) -> None:
    logger.info("Invoking regexp_or_gate with inputs:")
    for name, value in config.model_dump().items():
        if name == "auth_token":
            value = "*** (hidden for security)"
        logger.info(f"  {name}: {value}")


@click.command(name="regexp-or-gate")
@click.option("--regexp", default="", help="Regular expression selecting the gated job names")
@click.option("--base-url", default="https://api.github.com", show_default=True)
@click.option("--owner", default="", help="Owner of the repository")
@click.option("--repo", default="", help="Name of the repository")
@click.option("--workflow-run-id", default="", help="ID of the workflow run to watch")
@click.option("--github-token", envvar="GITHUB_TOKEN", default="", help="Token with actions:read")
@click.option("--outer-retry-limit", default="60", show_default=True)
@click.option("--outer-retry-delay", default="300", show_default=True, help="Seconds")
@click.option("--inner-retry-limit", default="12", show_default=True)
@click.option("--inner-retry-delay", default="300", show_default=True, help="Seconds")
@click.option("--log-file", default="", help="Also write the log to this file")
@click.option("--verbose", is_flag=True, help="Log every page request")
@click.pass_context
def gate_command(
    ctx,
    regexp,
    base_url,
    owner,
    repo,
    workflow_run_id,
    github_token,
    outer_retry_limit,
    outer_retry_delay,
    inner_retry_limit,
    inner_retry_delay,
    log_file,
    verbose,
):
    """Blocks until the OR result of the jobs matching REGEXP is known."""
    try:
        configure_logging(verbose, log_file)
        config = GateConfig.from_inputs(
            pattern=regexp,
            base_url=base_url,
            owner=owner,
            repo=repo,
            run_id=workflow_run_id,
            auth_token=github_token,
            outer_retry_limit=outer_retry_limit,
            outer_retry_delay=outer_retry_delay,
            inner_retry_limit=inner_retry_limit,
            inner_retry_delay=inner_retry_delay,
        )
        log_inputs(config)
        gate = OrGate(
            ActionsJobsClient(config.run_identity()),
            config.pattern,
            inner_policy=config.inner_policy(),
            outer_policy=config.outer_policy(),
        )
        evaluation = asyncio.run(gate.run())
    except OrGateError as e:
        logger.error(f"{type(e).__name__} during {e.stage}: {e}")
        ctx.exit(EXIT_FAILURE)

    if evaluation.verdict is Verdict.success:
        logger.success(f"At least one of {evaluation.matched} matched jobs succeeded")
        ctx.exit(EXIT_SUCCESS)
    counts = evaluation.classification
    logger.error(
        f"None of {evaluation.matched} matched jobs succeeded: "
        f"{counts.failed} failed, {counts.unrecognized} with unrecognized status"
    )
    ctx.exit(EXIT_FAILURE)


def main() -> None:
    try:
        code = gate_command.main(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        code = EXIT_FAILURE
    except click.Abort:
        code = EXIT_FAILURE
    sys.exit(EXIT_FAILURE if code else EXIT_SUCCESS)


if __name__ == "__main__":
    main()
