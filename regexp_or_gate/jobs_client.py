import asyncio
from typing import List, Tuple

import aiohttp
from loguru import logger
from pydantic import ValidationError
from regexp_or_gate.errors import DecodeError, TransportError
from regexp_or_gate.models import PAGE_SIZE, Job, JobsPage, RunIdentity

GITHUB_API_VERSION = "2022-11-28"


class ActionsJobsClient:
    def __init__(self, run: RunIdentity, page_size: int = PAGE_SIZE):
        self.run = run
        self.page_size = page_size
        self.logger = logger

    @property
    def headers(self) -> dict:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.run.auth_token.get_secret_value()}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    async def fetch_page(
        self, session: aiohttp.ClientSession, page: int
    ) -> Tuple[List[Job], int]:
        """Fetches one page of the run's jobs and returns them with the page's item count"""
        url = self.run.jobs_url
        params = {"page": page, "per_page": self.page_size}

        try:
            async with session.get(url, params=params, headers=self.headers) as response:
                response.raise_for_status()
                data = await response.json(content_type=None)
        except aiohttp.ClientResponseError as e:
            self.logger.error(f"HTTP error {e.status} at {url}: {e.message}")
            raise TransportError(
                f"Jobs request for page {page} failed with HTTP {e.status}", status=e.status
            ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Request to {url} did not complete: {e!r}")
            raise TransportError(f"Jobs request for page {page} did not complete: {e!r}") from e
        except ValueError as e:
            self.logger.error(f"Response from {url} is not valid JSON: {e}")
            raise DecodeError(f"Page {page} body is not valid JSON") from e

        try:
            decoded = JobsPage.model_validate(data)
        except ValidationError as e:
            self.logger.error(f"Unexpected jobs payload at {url}: {e}")
            raise DecodeError(f"Page {page} body does not contain a valid jobs array") from e

        self.logger.debug(f"Fetched page {page} with {len(decoded.jobs)} jobs")
        return decoded.jobs, len(decoded.jobs)

    async def fetch_all_jobs(self, session: aiohttp.ClientSession) -> List[Job]:
        """Walks the pages of the run until a short (or empty) page ends the data"""
        jobs: List[Job] = []
        page = 1

        while True:
            page_jobs, count = await self.fetch_page(session, page)
            jobs.extend(page_jobs)
            if count < self.page_size:
                break
            page += 1

        self.logger.debug(f"Run {self.run.run_id} has {len(jobs)} jobs over {page} pages")
        return jobs
