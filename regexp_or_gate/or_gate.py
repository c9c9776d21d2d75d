import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Pattern, Union

import aiohttp
from loguru import logger
from regexp_or_gate.errors import NoMatchExhaustedError, PendingExhaustedError
from regexp_or_gate.gate import classify_jobs, compile_pattern, evaluate, filter_jobs
from regexp_or_gate.jobs_client import ActionsJobsClient
from regexp_or_gate.models import GateEvaluation, Job, RetryPolicy, Verdict

DEFAULT_INNER_POLICY = RetryPolicy(max_attempts=12, delay_seconds=300)
DEFAULT_OUTER_POLICY = RetryPolicy(max_attempts=60, delay_seconds=300)


class OrGate:
    """Polls a run's jobs until the group matching a pattern settles on a verdict.

    The inner loop re-fetches the run until at least one job matches the
    pattern; the outer loop re-runs the inner loop until the matched group
    reports a success, a definitive failure, or the outer policy runs out.
    """

    def __init__(
        self,
        client: ActionsJobsClient,
        pattern: Union[str, Pattern[str]],
        inner_policy: Optional[RetryPolicy] = None,
        outer_policy: Optional[RetryPolicy] = None,
        on_evaluation: Optional[Callable[[GateEvaluation], Awaitable[Any]]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.pattern = compile_pattern(pattern)
        self.inner_policy = inner_policy or DEFAULT_INNER_POLICY
        self.outer_policy = outer_policy or DEFAULT_OUTER_POLICY
        self.on_evaluation = on_evaluation
        self.sleep = sleep
        self.logger = logger

    async def collect_matching_jobs(self, session: aiohttp.ClientSession) -> List[Job]:
        """Fetches and filters the run's jobs until the pattern matches at least one"""
        attempt = 0
        while True:
            jobs = await self.client.fetch_all_jobs(session)
            matched = filter_jobs(jobs, self.pattern)
            if matched:
                self.logger.info(
                    f"{len(matched)} of {len(jobs)} jobs match {self.pattern.pattern!r}"
                )
                return matched

            attempt += 1
            self.logger.info(
                f"No jobs match {self.pattern.pattern!r} ({len(jobs)} jobs in run), "
                f"attempt {attempt}/{self.inner_policy.max_attempts}"
            )
            if attempt >= self.inner_policy.max_attempts:
                raise NoMatchExhaustedError(
                    f"No jobs matched {self.pattern.pattern!r} after {attempt} attempts",
                    attempts=attempt,
                )
            await self._wait_before_retry(self.inner_policy, "matching jobs")

    async def evaluate_once(
        self, session: aiohttp.ClientSession, attempt: int
    ) -> GateEvaluation:
        matched = await self.collect_matching_jobs(session)
        classification = classify_jobs(matched)
        verdict = evaluate(classification)
        self.logger.info(
            f"Attempt {attempt}: {classification.succeeded} succeeded, "
            f"{classification.failed} failed, {classification.pending} pending "
            f"-> {verdict.value}"
        )
        evaluation = GateEvaluation(
            attempt=attempt,
            matched=len(matched),
            classification=classification,
            verdict=verdict,
        )
        if self.on_evaluation is not None:
            await self.on_evaluation(evaluation)
        return evaluation

    async def _wait_before_retry(self, policy: RetryPolicy, reason: str) -> None:
        self.logger.debug(f"Waiting {policy.delay_seconds}s for {reason}")
        await self.sleep(policy.delay_seconds)

    async def run(self) -> GateEvaluation:
        """Polls until a terminal verdict; a still-pending group past the outer policy is fatal"""
        attempt = 0
        async with aiohttp.ClientSession() as session:
            while True:
                evaluation = await self.evaluate_once(session, attempt + 1)
                if evaluation.verdict is not Verdict.pending:
                    return evaluation

                attempt += 1
                if attempt >= self.outer_policy.max_attempts:
                    raise PendingExhaustedError(
                        f"Jobs matching {self.pattern.pattern!r} still pending "
                        f"after {attempt} attempts",
                        attempts=attempt,
                    )
                await self._wait_before_retry(self.outer_policy, "pending jobs")
