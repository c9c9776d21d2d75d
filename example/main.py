import asyncio

from actions_server import ActionsServer, make_job
from regexp_or_gate.errors import OrGateError
from regexp_or_gate.jobs_client import ActionsJobsClient
from regexp_or_gate.models import GateConfig
from regexp_or_gate.or_gate import OrGate


async def evaluated(evaluation):
    counts = evaluation.classification
    print(f"Attempt {evaluation.attempt}: {evaluation.verdict.value}")
    print(f"  succeeded={counts.succeeded} failed={counts.failed} pending={counts.pending}")


async def main():
    PORT = 8000
    server = ActionsServer(
        polls=[
            [make_job("build"), make_job("wait-2 (pass, 1)", "queued")],
            [
                make_job("build"),
                make_job("wait-2 (fail, 1)", "completed", "failure"),
                make_job("wait-2 (pass, 1)", "in_progress"),
            ],
            [
                make_job("build"),
                make_job("wait-2 (fail, 1)", "completed", "failure"),
                make_job("wait-2 (pass, 1)", "completed", "success"),
            ],
        ]
    )
    await server.start(port=PORT)
    print(f"Server started on http://localhost:{PORT}")

    config = GateConfig.from_inputs(
        pattern="wait-2.*",
        base_url=f"http://localhost:{PORT}",
        owner="octo",
        repo="demo",
        run_id="1",
        auth_token="secret",
        outer_retry_limit=5,
        outer_retry_delay=2,
        inner_retry_limit=3,
        inner_retry_delay=1,
    )
    gate = OrGate(
        ActionsJobsClient(config.run_identity()),
        config.pattern,
        inner_policy=config.inner_policy(),
        outer_policy=config.outer_policy(),
        on_evaluation=evaluated,
    )

    try:
        result = await gate.run()
        print(f"Final verdict: {result.verdict.value}")
    except OrGateError as e:
        print(f"Gate failed during {e.stage}: {e}")
    finally:
        await server.stop()


if __name__ == "__main__":
    asyncio.run(main())
