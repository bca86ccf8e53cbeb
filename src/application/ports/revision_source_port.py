from typing import Protocol

from src.domain.revision import CommitHistory, FetchResult


class RevisionSourcePort(Protocol):
    """revision 데이터 조회 계약. 실패는 예외 대신 FetchResult.error로 반환합니다."""

    async def get_parents_line(self, revision_id: str) -> FetchResult:
        """`<id> <parent1> [<parent2> ...]` 형식의 부모 목록을 조회합니다."""
        ...

    async def get_diff(self, revision_id: str) -> FetchResult:
        """커밋 메타데이터 없이, 색상 없는 diff 원문을 조회합니다."""
        ...

    async def get_commit_history(self, count: int | None = None) -> CommitHistory:
        """HEAD부터 count개, 생략 시 마지막 push 이후의 커밋을 조회합니다."""
        ...

    async def count_branch_commits(self) -> int:
        """현재 브랜치가 원격 기본 브랜치보다 앞선 커밋 수를 반환합니다."""
        ...

    async def current_branch(self) -> str:
        ...
