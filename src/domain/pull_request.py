import re
from dataclasses import dataclass, field

from src.domain.revision import CollectionSummary

# conventional commit 타입 → PR 섹션 제목 (출력 순서)
COMMIT_TYPES: dict[str, str] = {
    "feat": "Features",
    "fix": "Bug Fixes",
    "refactor": "Refactors",
    "chore": "Chores",
    "docs": "Documentation",
    "style": "Styling",
    "test": "Tests",
    "perf": "Performance Improvements",
    "ci": "CI/CD",
    "build": "Build System",
    "revert": "Reverts",
}
OTHER_CHANGES = "Other Changes"

_CONVENTIONAL_COMMIT_PATTERN = re.compile(r"^(\w+)(\(.+\))?: (.+)$")


def categorize_commits(messages: list[str]) -> dict[str, list[str]]:
    """커밋 메시지를 conventional commit 타입별 섹션으로 분류합니다."""
    categorized: dict[str, list[str]] = {}

    for message in messages:
        if not message.strip():
            continue
        match = _CONVENTIONAL_COMMIT_PATTERN.match(message)
        section = COMMIT_TYPES.get(match.group(1)) if match else None
        if section:
            categorized.setdefault(section, []).append(f"- {match.group(3)}")
        else:
            categorized.setdefault(OTHER_CHANGES, []).append(f"- {message}")

    return categorized


def generate_pr_description(
    categorized: dict[str, list[str]], template_content: str | None = None,
) -> str:
    """분류된 커밋으로 마크다운 PR 설명을 만듭니다. 템플릿이 있으면 앞에 붙입니다."""
    body = ""
    if template_content:
        body += template_content + "\n\n---\n\n"

    for section in [*COMMIT_TYPES.values(), OTHER_CHANGES]:
        entries = categorized.get(section)
        if entries:
            body += f"### {section}\n\n"
            body += "\n".join(entries) + "\n\n"

    return body.strip()


@dataclass(frozen=True)
class PullRequestDraft:
    """PR 설명 초안: 분류 기반 설명 + 호스트 모델용 프롬프트"""
    commit_messages: tuple[str, ...]
    description: str
    prompt: str
    template_name: str = ""
    is_update: bool = False
    summary: CollectionSummary | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PromptTemplate:
    """프롬프트 본문 템플릿 (Jinja2)"""
    name: str
    body: str
    description: str = ""
