import asyncio
import logging
from dataclasses import dataclass

from src.domain.revision import CommitHistory, FetchResult

logger = logging.getLogger(__name__)

# git log 한 줄에 해시와 제목을 함께 출력할 때 쓰는 구분자 (unit separator)
_FIELD_SEPARATOR = "\x1f"
_FIELD_SEPARATOR_FORMAT = "%x1f"


@dataclass(frozen=True)
class _CommandResult:
    """외부 명령 실행 결과"""
    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitRevisionAdapter:
    """로컬 git 명령으로 커밋 부모/diff/히스토리를 조회하는 Adapter"""

    _DEFAULT_BASE_BRANCH = "main"

    # git 명령 실행 timeout (초)
    _GIT_TIMEOUT_SECONDS = 60

    def __init__(self, working_dir: str = "."):
        """
        Args:
            working_dir: git 명령을 실행할 작업 디렉토리 (기본값: 현재 디렉토리)
        """
        self.working_dir = working_dir

    async def _run_git(self, *args: str) -> _CommandResult:
        """git 명령을 실행하고 결과를 반환합니다.

        Args:
            *args: git 하위 명령과 인자들 (예: "log", "--oneline")

        Returns:
            _CommandResult: stdout/stderr 문자열과 returncode

        Raises:
            RuntimeError: timeout 초과 또는 git 실행 파일이 없을 때
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                "git", *args,
                cwd=self.working_dir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise RuntimeError(f"git 실행 실패: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self._GIT_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            proc.kill()
            raise RuntimeError(
                f"git 명령 timeout ({self._GIT_TIMEOUT_SECONDS}초 초과): git {' '.join(args)}"
            )
        return _CommandResult(
            stdout=stdout.decode("utf-8", errors="replace").strip(),
            stderr=stderr.decode("utf-8", errors="replace").strip(),
            returncode=proc.returncode,
        )

    async def _query(self, *args: str) -> FetchResult:
        """git 명령 결과를 FetchResult로 변환합니다. 실패는 예외 대신 error 값."""
        try:
            result = await self._run_git(*args)
        except RuntimeError as e:
            return FetchResult.failure(str(e))
        if not result.ok:
            return FetchResult.failure(
                result.stderr or f"git {' '.join(args)} 실패 (exit {result.returncode})"
            )
        return FetchResult.success(result.stdout)

    async def get_parents_line(self, revision_id: str) -> FetchResult:
        return await self._query("rev-list", "--parents", "-n", "1", revision_id)

    async def get_diff(self, revision_id: str) -> FetchResult:
        return await self._query("show", "--format=", "--no-color", revision_id)

    async def current_branch(self) -> str:
        result = await self._run_git("rev-parse", "--abbrev-ref", "HEAD")
        if not result.ok:
            raise RuntimeError(f"현재 브랜치를 확인할 수 없습니다: {result.stderr}")
        return result.stdout

    async def get_commit_history(self, count: int | None = None) -> CommitHistory:
        """커밋 제목/해시를 조회합니다.

        count 지정 시 HEAD부터 count개, 생략 시 마지막 push 이후 커밋.
        조회 실패 시 빈 히스토리를 반환합니다.
        """
        try:
            if count:
                range_args: tuple[str, ...] = ("-n", str(count))
            else:
                branch = await self.current_branch()
                merge_base = await self._run_git("merge-base", branch, f"origin/{branch}")
                if not merge_base.ok:
                    raise RuntimeError(
                        f"마지막 push 지점을 찾을 수 없습니다: origin/{branch} ({merge_base.stderr})"
                    )
                range_args = (f"{merge_base.stdout}..HEAD",)

            log = await self._run_git("log", *range_args, f"--format=%H{_FIELD_SEPARATOR_FORMAT}%s")
            if not log.ok:
                raise RuntimeError(log.stderr or "git log 실패")
        except RuntimeError as e:
            logger.error("커밋 히스토리 조회 실패: %s", e)
            return CommitHistory()

        # 해시와 제목을 한 줄에서 읽어 빈 제목 커밋도 짝을 유지
        entries = [line.split(_FIELD_SEPARATOR, 1) for line in log.stdout.splitlines() if line]
        history = CommitHistory(
            messages=tuple(entry[1] if len(entry) > 1 else "" for entry in entries),
            hashes=tuple(entry[0] for entry in entries),
        )
        logger.info("커밋 히스토리 조회 완료: %d건 (count=%s)", history.count, count)
        return history

    async def _find_base_branch(self) -> str:
        """원격 기본 브랜치를 찾습니다. 확인할 수 없으면 main."""
        result = await self._run_git("symbolic-ref", "refs/remotes/origin/HEAD")
        if result.ok and result.stdout:
            return result.stdout.rsplit("/", 1)[-1]
        logger.warning("원격 기본 브랜치를 확인할 수 없습니다. '%s' 사용", self._DEFAULT_BASE_BRANCH)
        return self._DEFAULT_BASE_BRANCH

    async def count_branch_commits(self) -> int:
        """현재 브랜치가 기본 브랜치보다 앞선 커밋 수"""
        base_branch = await self._find_base_branch()
        result = await self._run_git("rev-list", "--count", f"{base_branch}..HEAD")
        if not result.ok:
            raise RuntimeError(f"커밋 수를 셀 수 없습니다: {base_branch}..HEAD ({result.stderr})")
        count = int(result.stdout or "0")
        logger.info("브랜치 커밋 수: %d (base=%s)", count, base_branch)
        return count
