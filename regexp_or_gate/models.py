from enum import Enum
from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from regexp_or_gate.errors import ConfigurationError

PAGE_SIZE = 100


class JobStatus(str, Enum):
    queued = "queued"
    in_progress = "in_progress"
    completed = "completed"
    unrecognized = "unrecognized"

    @classmethod
    def parse(cls, value: str) -> "JobStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.unrecognized


class JobConclusion(str, Enum):
    success = "success"
    failure = "failure"
    other = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "JobConclusion":
        if value == cls.success.value:
            return cls.success
        if value == cls.failure.value:
            return cls.failure
        return cls.other


class Verdict(str, Enum):
    success = "success"
    failure = "failure"
    pending = "pending"


class Job(BaseModel):
    """One job of a workflow run, as reported by a single poll"""

    model_config = ConfigDict(frozen=True)

    name: str
    status: str
    conclusion: Optional[str] = None

    @property
    def state(self) -> JobStatus:
        return JobStatus.parse(self.status)

    @property
    def outcome(self) -> Optional[JobConclusion]:
        """Conclusion of a completed job, None while the job has not completed"""
        if self.state is not JobStatus.completed:
            return None
        return JobConclusion.parse(self.conclusion)


class JobsPage(BaseModel):
    total_count: Optional[int] = None
    jobs: List[Job]


class Classification(BaseModel):
    pending: int = 0
    failed: int = 0
    succeeded: int = 0
    unrecognized: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.failed + self.succeeded + self.unrecognized


class GateEvaluation(BaseModel):
    attempt: int
    matched: int
    classification: Classification
    verdict: Verdict


class RetryPolicy(BaseModel):
    max_attempts: int = Field(ge=0)
    delay_seconds: float = Field(ge=0)


class RunIdentity(BaseModel):
    base_url: str
    owner: str
    repo: str
    run_id: str
    auth_token: SecretStr

    @property
    def jobs_url(self) -> str:
        base = self.base_url.rstrip("/")
        return f"{base}/repos/{self.owner}/{self.repo}/actions/runs/{self.run_id}/jobs"


class GateConfig(BaseModel):
    """Validated inputs of one gate invocation"""

    pattern: str
    base_url: str
    owner: str
    repo: str
    run_id: str
    auth_token: SecretStr
    outer_retry_limit: int = Field(default=60, ge=0)
    outer_retry_delay: int = Field(default=300, ge=0)
    inner_retry_limit: int = Field(default=12, ge=0)
    inner_retry_delay: int = Field(default=300, ge=0)

    @field_validator("pattern", "base_url", "owner", "repo", "run_id", mode="before")
    @classmethod
    def _required_text(cls, value, info: ValidationInfo):
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("must not be blank")
        # Whitespace is significant in a regular expression
        if info.field_name != "pattern" and isinstance(value, str):
            return value.strip()
        return value

    @field_validator("auth_token", mode="before")
    @classmethod
    def _required_token(cls, value):
        if value is None:
            raise ValueError("must not be blank")
        raw = value.get_secret_value() if isinstance(value, SecretStr) else value
        if not str(raw).strip():
            raise ValueError("must not be blank")
        return value

    @field_validator(
        "outer_retry_limit",
        "outer_retry_delay",
        "inner_retry_limit",
        "inner_retry_delay",
        mode="before",
    )
    @classmethod
    def _integer_text(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if not value.isdigit():
                raise ValueError("must be a non-negative integer")
            return int(value)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("must be a non-negative integer")
        return value

    @classmethod
    def from_inputs(cls, **inputs) -> "GateConfig":
        """Builds a config, reporting every invalid input as a ConfigurationError"""
        try:
            return cls(**inputs)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigurationError(f"Invalid configuration: {problems}") from e

    def run_identity(self) -> RunIdentity:
        return RunIdentity(
            base_url=self.base_url,
            owner=self.owner,
            repo=self.repo,
            run_id=self.run_id,
            auth_token=self.auth_token,
        )

    def inner_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.inner_retry_limit, delay_seconds=self.inner_retry_delay
        )

    def outer_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.outer_retry_limit, delay_seconds=self.outer_retry_delay
        )
