from typing import List, Optional

from aiohttp import web
from loguru import logger


def make_job(name: str, status: str = "completed", conclusion: Optional[str] = "success"):
    return {
        "id": abs(hash(name)) % 10**9,
        "name": name,
        "status": status,
        "conclusion": conclusion if status == "completed" else None,
        "html_url": f"https://github.com/octo/demo/actions/jobs/{name}",
    }


class ActionsServer:
    """Local stand-in for the GitHub Actions "list jobs for a workflow run" endpoint.

    ``polls`` holds one job list per poll cycle; a request for page 1 starts the
    next cycle, and the last cycle repeats once the script runs out.
    """

    def __init__(self, polls: Optional[List[List[dict]]] = None, token: str = "secret"):
        self.polls = polls or [[]]
        self.token = token
        self.cycle = -1
        self.requests: List[dict] = []
        self.error_status: Optional[int] = None
        self.raw_body: Optional[str] = None
        self.app = web.Application()
        self.app.router.add_get(
            "/repos/{owner}/{repo}/actions/runs/{run_id}/jobs", self.handle_jobs
        )
        self.logger = logger
        self._runner: Optional[web.AppRunner] = None

    @property
    def cycles(self) -> int:
        return self.cycle + 1

    async def handle_jobs(self, request: web.Request):
        page = int(request.query.get("page", "1"))
        per_page = int(request.query.get("per_page", "30"))
        self.requests.append(
            {"run_id": request.match_info["run_id"], "page": page, "per_page": per_page}
        )

        if request.headers.get("Authorization") != f"Bearer {self.token}":
            return web.json_response({"message": "Bad credentials"}, status=401)
        if self.error_status is not None:
            self.logger.info(f"Returning HTTP {self.error_status}")
            return web.json_response({"message": "error"}, status=self.error_status)
        if self.raw_body is not None:
            return web.Response(text=self.raw_body, content_type="application/json")

        if page == 1:
            self.cycle += 1
        jobs = self.polls[min(self.cycle, len(self.polls) - 1)]
        start = (page - 1) * per_page
        self.logger.info(f"Serving page {page} of cycle {self.cycle}")
        return web.json_response(
            {"total_count": len(jobs), "jobs": jobs[start : start + per_page]}
        )

    async def start(self, port: int = 8080):
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "localhost", port)
        await site.start()
        self.logger.info(f"Server started on port {port}")
        return site

    async def stop(self):
        if self._runner is not None:
            await self._runner.cleanup()
