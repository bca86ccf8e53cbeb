from pathlib import Path
from typing import Protocol


class PrTemplateFinderPort(Protocol):
    """저장소의 PR 템플릿 파일 탐색 계약"""

    def find_templates(self) -> list[Path]:
        ...

    def read_template(self, path: Path) -> str:
        ...


class PullRequestHostPort(Protocol):
    """원격 PR 호스트 (GitHub 등) 조회 계약"""

    async def get_existing_description(self, branch_name: str) -> str | None:
        """브랜치의 기존 PR 본문을 반환합니다. PR이 없거나 조회 실패 시 None."""
        ...
