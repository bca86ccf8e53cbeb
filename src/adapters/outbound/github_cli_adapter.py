import asyncio
import logging

logger = logging.getLogger(__name__)


class GitHubCliAdapter:
    """GitHub CLI(gh)로 기존 PR 정보를 조회하는 Adapter"""

    _GH_TIMEOUT_SECONDS = 30

    def __init__(self, working_dir: str = "."):
        self.working_dir = working_dir

    async def _run_gh(self, *args: str) -> tuple[int, str]:
        proc = await asyncio.create_subprocess_exec(
            "gh", *args,
            cwd=self.working_dir,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self._GH_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            proc.kill()
            raise RuntimeError(f"gh 명령 timeout ({self._GH_TIMEOUT_SECONDS}초 초과): gh {' '.join(args)}")
        return proc.returncode, stdout.decode("utf-8", errors="replace").strip()

    async def get_existing_description(self, branch_name: str) -> str | None:
        """브랜치의 기존 PR 본문. PR이 없거나 gh를 사용할 수 없으면 None."""
        try:
            returncode, body = await self._run_gh(
                "pr", "view", branch_name, "--json", "body", "--jq", ".body",
            )
        except (OSError, RuntimeError) as e:
            logger.info("기존 PR 조회 불가: %s - %s", branch_name, e)
            return None

        if returncode != 0 or not body:
            return None
        logger.info("기존 PR 설명 발견: branch=%s, %d자", branch_name, len(body))
        return body
