import re
from typing import List, Pattern, Sequence, Union

from loguru import logger
from regexp_or_gate.errors import EmptyInputError, PatternError
from regexp_or_gate.models import (
    Classification,
    Job,
    JobConclusion,
    JobStatus,
    Verdict,
)

PENDING_STATES = (JobStatus.queued, JobStatus.in_progress)


def compile_pattern(pattern: Union[str, Pattern[str]]) -> Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError(f"Invalid job name pattern {pattern!r}: {e}") from e


def filter_jobs(jobs: Sequence[Job], pattern: Union[str, Pattern[str]]) -> List[Job]:
    """Returns the jobs whose name contains a match for pattern, in their original order"""
    regex = compile_pattern(pattern)
    return [
        Job(name=job.name, status=job.status, conclusion=job.conclusion)
        for job in jobs
        if regex.search(job.name)
    ]


def classify_jobs(jobs: Sequence[Job]) -> Classification:
    """Partitions jobs into pending, succeeded and failed counts.

    Jobs reporting a status outside queued/in_progress/completed are logged and
    counted as unrecognized, never as pending, succeeded or failed.
    """
    if not jobs:
        raise EmptyInputError("Cannot classify an empty job list")

    counts = Classification()
    for job in jobs:
        state = job.state
        if state in PENDING_STATES:
            counts.pending += 1
        elif state is JobStatus.completed:
            if job.outcome is JobConclusion.success:
                counts.succeeded += 1
            else:
                counts.failed += 1
        else:
            logger.warning(f"Job {job.name!r} has unrecognized status {job.status!r}")
            counts.unrecognized += 1
    return counts


def evaluate(classification: Classification) -> Verdict:
    # A single success settles the group even while other jobs are still running
    if classification.succeeded > 0:
        return Verdict.success
    if classification.pending > 0:
        return Verdict.pending
    return Verdict.failure
