import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class FilesystemPrTemplateFinder:
    """`.github` 폴더에서 PR 템플릿 파일을 찾는 Adapter"""

    def __init__(self, repo_root: str | Path = "."):
        self._github_path = Path(repo_root) / ".github"

    def find_templates(self) -> list[Path]:
        """
        탐색 우선순위:
        1. .github/PULL_REQUEST_TEMPLATE/*.md
        2. .github/*pull_request_template*.md (대소문자 무시)
        """
        template_dir = self._github_path / "PULL_REQUEST_TEMPLATE"
        templates: list[Path] = []

        if template_dir.is_dir():
            templates = sorted(p for p in template_dir.iterdir() if p.suffix == ".md")

        if not templates and self._github_path.is_dir():
            templates = sorted(
                p for p in self._github_path.iterdir()
                if p.suffix == ".md" and "pull_request_template" in p.name.lower()
            )

        logger.info("PR 템플릿 탐색 완료: %d개 (%s)", len(templates), self._github_path)
        return templates

    def read_template(self, path: Path) -> str:
        return Path(path).read_text(encoding="utf-8")
