from dataclasses import dataclass
from functools import lru_cache

from src.adapters.outbound.git_revision_adapter import GitRevisionAdapter
from src.adapters.outbound.github_cli_adapter import GitHubCliAdapter
from src.adapters.outbound.pr_template_finder import FilesystemPrTemplateFinder
from src.adapters.outbound.yaml_prompt_template_repository import YamlPromptTemplateRepository
from src.application.services.payload_formatter import PayloadFormatter
from src.application.services.prompt_renderer import PromptRenderer
from src.application.use_cases.collect_commit_diffs import CollectCommitDiffsUseCase
from src.application.use_cases.draft_pr_description import DraftPullRequestUseCase
from src.application.use_cases.reload_prompt_templates import ReloadPromptTemplatesUseCase
from src.configuration.settings import Settings, build_settings
from src.domain.diff_text import TruncationPolicy


@dataclass(frozen=True)
class RepositoryServices:
    """저장소 하나에 묶인 Adapter/Use Case 묶음"""
    revision_source: GitRevisionAdapter
    collect_commit_diffs_use_case: CollectCommitDiffsUseCase
    draft_pr_description_use_case: DraftPullRequestUseCase
    template_finder: FilesystemPrTemplateFinder


@dataclass(frozen=True)
class Container:
    settings: Settings
    payload_formatter: PayloadFormatter
    prompt_renderer: PromptRenderer
    reload_prompt_templates_use_case: ReloadPromptTemplatesUseCase
    default_repository: RepositoryServices

    def for_repository(self, repository_path: str | None) -> RepositoryServices:
        """repository_path가 주어지면 해당 저장소용 서비스를 새로 구성합니다."""
        if not repository_path or repository_path == self.settings.git_repository_path:
            return self.default_repository
        return build_repository_services(
            self.settings, repository_path, self.payload_formatter, self.prompt_renderer,
        )


def build_repository_services(
    settings: Settings,
    repository_path: str,
    payload_formatter: PayloadFormatter,
    prompt_renderer: PromptRenderer,
) -> RepositoryServices:
    revision_source = GitRevisionAdapter(working_dir=repository_path)
    template_finder = FilesystemPrTemplateFinder(repo_root=repository_path)

    policy = TruncationPolicy(
        max_total_size=settings.max_diff_chars,
        max_lines_per_file=settings.max_lines_per_file,
    )
    collect_commit_diffs_use_case = CollectCommitDiffsUseCase(
        revision_source=revision_source,
        policy=policy,
        large_diff_threshold=settings.large_diff_warning_threshold,
    )

    draft_pr_description_use_case = DraftPullRequestUseCase(
        revision_source=revision_source,
        collect_diffs=collect_commit_diffs_use_case,
        formatter=payload_formatter,
        prompt_renderer=prompt_renderer,
        template_finder=template_finder,
        pr_host=GitHubCliAdapter(working_dir=repository_path),
        template_language=settings.template_language,
    )

    return RepositoryServices(
        revision_source=revision_source,
        collect_commit_diffs_use_case=collect_commit_diffs_use_case,
        draft_pr_description_use_case=draft_pr_description_use_case,
        template_finder=template_finder,
    )


@lru_cache(maxsize=1)
def build_container() -> Container:
    settings = build_settings()

    # 프롬프트 템플릿 저장소 + 렌더러
    template_repo = YamlPromptTemplateRepository(yaml_path=settings.prompt_template_path)
    prompt_renderer = PromptRenderer(template_repo=template_repo)
    payload_formatter = PayloadFormatter()

    # 템플릿 핫 리로드
    reload_prompt_templates_use_case = ReloadPromptTemplatesUseCase(
        template_repo=template_repo,
    )

    default_repository = build_repository_services(
        settings, settings.git_repository_path, payload_formatter, prompt_renderer,
    )

    return Container(
        settings=settings,
        payload_formatter=payload_formatter,
        prompt_renderer=prompt_renderer,
        reload_prompt_templates_use_case=reload_prompt_templates_use_case,
        default_repository=default_repository,
    )


def clear_container() -> None:
    build_container.cache_clear()
