import logging
from pathlib import Path

import yaml

from src.domain.pull_request import PromptTemplate

logger = logging.getLogger(__name__)


class YamlPromptTemplateRepository:
    """YAML 파일 기반 프롬프트 템플릿 저장소 (mtime 캐시)"""

    def __init__(self, yaml_path: str | Path):
        self._path = Path(yaml_path)
        self._cache: dict | None = None
        self._cache_mtime: float = 0.0

    def _ensure_loaded(self) -> dict:
        """파일이 변경되었으면 다시 로드합니다."""
        try:
            current_mtime = self._path.stat().st_mtime
        except FileNotFoundError:
            raise FileNotFoundError(
                f"프롬프트 템플릿 YAML 파일을 찾을 수 없습니다: {self._path}"
            )

        if self._cache is None or current_mtime > self._cache_mtime:
            logger.info("YAML 프롬프트 템플릿 로드: %s", self._path)
            with open(self._path, "r", encoding="utf-8") as f:
                self._cache = yaml.safe_load(f) or {}
            self._cache_mtime = current_mtime
            logger.info(
                "YAML 프롬프트 템플릿 로드 완료: %d 템플릿",
                len(self._cache.get("prompts", {})),
            )

        return self._cache

    def template_names(self) -> list[str]:
        return list(self._ensure_loaded().get("prompts", {}).keys())

    def get_template(self, name: str) -> PromptTemplate:
        prompts = self._ensure_loaded().get("prompts", {})
        if name not in prompts:
            raise ValueError(
                f"존재하지 않는 프롬프트 템플릿: '{name}'. 사용 가능: {list(prompts.keys())}"
            )
        entry = prompts[name]
        return PromptTemplate(
            name=name,
            body=entry.get("body", ""),
            description=entry.get("description", ""),
        )

    def reload(self) -> None:
        """캐시를 강제로 무효화합니다."""
        logger.info("프롬프트 템플릿 캐시 강제 무효화")
        self._cache = None
        self._cache_mtime = 0.0
