import asyncio
from pathlib import Path

import pytest

from src.adapters.outbound.yaml_prompt_template_repository import YamlPromptTemplateRepository
from src.application.services.payload_formatter import PayloadFormatter
from src.application.services.prompt_renderer import PromptRenderer
from src.application.use_cases.collect_commit_diffs import CollectCommitDiffsUseCase
from src.application.use_cases.draft_pr_description import DraftPullRequestUseCase
from src.domain.revision import CommitHistory
from tests.fakes import PROMPT_TEMPLATES_YAML, FakeRevisionSource, make_diff

SHA_A = "a" * 40
SHA_B = "b" * 40

HISTORY = CommitHistory(messages=("feat: add login", "fix: token bug"), hashes=(SHA_A, SHA_B))


class FakeTemplateFinder:
    def __init__(self, templates: dict[str, str] | None = None):
        self.templates = templates or {}

    def find_templates(self) -> list[Path]:
        return [Path(".github") / name for name in self.templates]

    def read_template(self, path: Path) -> str:
        return self.templates[path.name]


class FakePrHost:
    def __init__(self, description: str | None = None):
        self.description = description
        self.branches: list[str] = []

    async def get_existing_description(self, branch_name: str) -> str | None:
        self.branches.append(branch_name)
        return self.description


def _use_case(source, finder=None, host=None):
    return DraftPullRequestUseCase(
        revision_source=source,
        collect_diffs=CollectCommitDiffsUseCase(revision_source=source),
        formatter=PayloadFormatter(),
        prompt_renderer=PromptRenderer(YamlPromptTemplateRepository(PROMPT_TEMPLATES_YAML)),
        template_finder=finder or FakeTemplateFinder(),
        pr_host=host or FakePrHost(),
        template_language="en",
    )


def test_draft_from_counted_history_without_diffs():
    source = FakeRevisionSource(histories={2: HISTORY})
    host = FakePrHost("existing body")

    draft = asyncio.run(_use_case(source, host=host).execute(count=2))

    assert draft.commit_messages == HISTORY.messages
    assert draft.description == "### Features\n\n- add login\n\n### Bug Fixes\n\n- token bug"
    assert "feat: add login" in draft.prompt
    assert "=== CODE CHANGES ===" not in draft.prompt
    assert draft.summary is None
    # diff를 읽지 않으면 기존 PR 조회도 하지 않음
    assert draft.is_update is False
    assert host.branches == []
    assert source.diff_calls == []


def test_draft_with_diffs_updates_existing_pr():
    source = FakeRevisionSource(
        histories={2: HISTORY},
        diffs={SHA_A: make_diff("auth.py", ["+login()"]), SHA_B: make_diff("token.py", ["-bug"])},
    )
    host = FakePrHost("Old PR body")

    draft = asyncio.run(_use_case(source, host=host).execute(count=2, read_diffs=True))

    assert draft.is_update is True
    assert host.branches == ["feature/login"]
    assert "Existing PR Description:\nOld PR body" in draft.prompt
    assert "Commit 1: feat: add login\nHash: " + SHA_A in draft.prompt
    assert "+login()" in draft.prompt
    assert draft.summary.valid == 2


def test_single_template_is_selected_automatically():
    source = FakeRevisionSource(histories={2: HISTORY})
    finder = FakeTemplateFinder({"pull_request_template.md": "## What\n\n## Why"})

    draft = asyncio.run(_use_case(source, finder=finder).execute(count=2, template_language="ja"))

    assert draft.template_name == "pull_request_template.md"
    assert draft.description.startswith("## What\n\n## Why\n\n---\n\n")
    assert "PR Template (Language: ja):\n## What" in draft.prompt


def test_multiple_templates_require_a_name():
    source = FakeRevisionSource(histories={2: HISTORY})
    finder = FakeTemplateFinder({"bug.md": "bug", "feature.md": "feature"})

    draft = asyncio.run(_use_case(source, finder=finder).execute(count=2))
    assert draft.template_name == ""
    assert any("template_name" in w for w in draft.warnings)

    named = asyncio.run(_use_case(source, finder=finder).execute(count=2, template_name="feature"))
    assert named.template_name == "feature.md"

    with pytest.raises(ValueError):
        asyncio.run(_use_case(source, finder=finder).execute(count=2, template_name="docs"))


def test_falls_back_to_branch_commit_count():
    source = FakeRevisionSource(histories={3: HISTORY}, branch_count=3)

    draft = asyncio.run(_use_case(source).execute())

    assert source.history_calls == [None, 3]
    assert draft.commit_messages == HISTORY.messages


def test_no_commits_is_an_error():
    source = FakeRevisionSource(branch_count=RuntimeError("no remote"))

    with pytest.raises(ValueError):
        asyncio.run(_use_case(source).execute())


def test_mismatched_history_skips_diffs_with_warning():
    history = CommitHistory(messages=("feat: a",), hashes=(SHA_A, SHA_B))
    source = FakeRevisionSource(
        histories={2: history},
        diffs={SHA_A: make_diff("a.py", ["+a"]), SHA_B: make_diff("b.py", ["+b"])},
    )

    draft = asyncio.run(_use_case(source).execute(count=2, read_diffs=True))

    assert "=== CODE CHANGES ===" not in draft.prompt
    assert any("diff" in w for w in draft.warnings)
