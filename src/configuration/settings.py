import json
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# 프로젝트 루트 디렉토리 (src/configuration/settings.py -> ../../)
_PROJECT_ROOT = Path(__file__).parent.parent.parent


def _load_env() -> None:
    app_env = os.getenv("APP_ENV", "local")
    env_file = _PROJECT_ROOT / f".env.{app_env}"
    load_dotenv(env_file)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"환경 변수 {name}는 정수여야 합니다: {raw!r}")


@dataclass(frozen=True)
class Settings:
    app_env: str
    server_name: str
    git_repository_path: str
    git_repositories: dict[str, str]  # {프로젝트명: git경로} 매핑 (repository_path allowlist)
    max_diff_chars: int  # 커밋 1건의 diff 최대 문자수
    max_lines_per_file: int  # 파일별 diff 본문 최대 라인수
    large_diff_warning_threshold: int  # 전체 diff 크기 경고 기준
    prompt_template_path: str
    template_language: str


def build_settings() -> Settings:
    _load_env()

    default_template_path = str(_PROJECT_ROOT / "config" / "prompt_templates.yaml")

    git_repos_raw = os.getenv("GIT_REPOSITORIES", "{}")
    try:
        git_repositories = json.loads(git_repos_raw)
    except json.JSONDecodeError:
        git_repositories = {}
    if not isinstance(git_repositories, dict):
        git_repositories = {}

    return Settings(
        app_env=os.getenv("APP_ENV", "local"),
        server_name=os.getenv("SERVER_NAME", "commit-digest"),
        git_repository_path=os.getenv("GIT_REPOSITORY_PATH", "."),
        git_repositories=git_repositories,
        max_diff_chars=_int_env("MAX_DIFF_CHARS", 8000),
        max_lines_per_file=_int_env("MAX_LINES_PER_FILE", 40),
        large_diff_warning_threshold=_int_env("LARGE_DIFF_WARNING_THRESHOLD", 50000),
        prompt_template_path=os.getenv("PROMPT_TEMPLATE_PATH", default_template_path),
        template_language=os.getenv("TEMPLATE_LANGUAGE", "en"),
    )
