import logging
from pathlib import Path

from src.application.ports.pull_request_context_port import PrTemplateFinderPort, PullRequestHostPort
from src.application.ports.revision_source_port import RevisionSourcePort
from src.application.services.payload_formatter import PayloadFormatError, PayloadFormatter
from src.application.services.prompt_renderer import PromptRenderer
from src.application.use_cases.collect_commit_diffs import CollectCommitDiffsUseCase
from src.domain.pull_request import PullRequestDraft, categorize_commits, generate_pr_description
from src.domain.revision import CollectionSummary, CommitHistory

logger = logging.getLogger(__name__)

PR_DESCRIPTION_PROMPT = "pr_description"


class DraftPullRequestUseCase:
    """
    커밋 히스토리로 PR 설명 초안과 호스트 모델용 프롬프트를 만드는 Use Case

    diff를 읽는 경우(read_diffs) 기존 PR 설명이 있으면 갱신 모드 프롬프트를 만듭니다.
    """

    def __init__(
        self,
        revision_source: RevisionSourcePort,
        collect_diffs: CollectCommitDiffsUseCase,
        formatter: PayloadFormatter,
        prompt_renderer: PromptRenderer,
        template_finder: PrTemplateFinderPort,
        pr_host: PullRequestHostPort,
        template_language: str = "en",
    ):
        self._source = revision_source
        self._collect_diffs = collect_diffs
        self._formatter = formatter
        self._renderer = prompt_renderer
        self._template_finder = template_finder
        self._pr_host = pr_host
        self._template_language = template_language

    async def execute(
        self,
        count: int | None = None,
        read_diffs: bool = False,
        developer_description: str = "",
        template_name: str = "",
        template_language: str = "",
        include_merge_diffs: bool = False,
    ) -> PullRequestDraft:
        """
        Args:
            count: HEAD부터 읽을 커밋 수 (생략 시 마지막 push 이후 커밋)
            read_diffs: True이면 커밋 diff를 수집해 프롬프트에 포함
            developer_description: 개발자가 직접 적은 작업 설명
            template_name: 사용할 PR 템플릿 파일명 (여러 개일 때)
            template_language: 템플릿 언어 코드 (생략 시 설정값)

        Raises:
            ValueError: 대상 커밋이 없거나 템플릿 이름이 잘못되었을 때
        """
        history = await self._load_history(count)
        if history.count == 0:
            raise ValueError("PR 설명을 만들 커밋이 없습니다 (push 이후 새 커밋 없음)")

        warnings: list[str] = []
        summary: CollectionSummary | None = None
        code_changes = ""

        if read_diffs and history.hashes:
            collection = await self._collect_diffs.execute(list(history.hashes), include_merge_diffs)
            summary = collection.summary
            warnings.extend(summary.warnings)
            try:
                code_changes = self._formatter.format(collection.outcomes, history.messages)
            except PayloadFormatError as e:
                logger.warning("diff 포맷 실패, 커밋 메시지만 사용: %s", e)
                warnings.append(f"⚠️ diff를 프롬프트에 포함하지 못했습니다: {e}")

        template_label, template_content = self._choose_template(template_name, warnings)

        existing_description = await self._existing_description() if read_diffs else None

        messages = list(history.messages)
        description = generate_pr_description(categorize_commits(messages), template_content)
        prompt = self._renderer.render(PR_DESCRIPTION_PROMPT, {
            "is_update": existing_description is not None,
            "existing_description": existing_description or "",
            "has_diffs": bool(code_changes),
            "commit_messages": messages,
            "code_changes": code_changes,
            "developer_description": developer_description,
            "template_content": template_content or "",
            "template_language": template_language or self._template_language,
        })

        logger.info(
            "PR 설명 초안 생성 완료: commits=%d, diffs=%s, template=%s, update=%s",
            history.count, bool(code_changes), template_label or "-", existing_description is not None,
        )

        return PullRequestDraft(
            commit_messages=tuple(messages),
            description=description,
            prompt=prompt,
            template_name=template_label,
            is_update=existing_description is not None,
            summary=summary,
            warnings=tuple(warnings),
        )

    async def _load_history(self, count: int | None) -> CommitHistory:
        if count:
            return await self._source.get_commit_history(count)

        history = await self._source.get_commit_history()
        if history.count > 0:
            return history

        # push 이후 커밋이 없으면 기본 브랜치 대비 브랜치 전체 커밋 사용
        logger.info("push 이후 새 커밋 없음, 브랜치 커밋 수로 재조회")
        try:
            branch_count = await self._source.count_branch_commits()
        except (RuntimeError, ValueError) as e:
            logger.warning("브랜치 커밋 수 확인 실패: %s", e)
            return CommitHistory()

        if branch_count <= 0:
            return CommitHistory()
        return await self._source.get_commit_history(branch_count)

    def _choose_template(self, template_name: str, warnings: list[str]) -> tuple[str, str | None]:
        """(템플릿 파일명, 내용)을 반환합니다. 템플릿이 없으면 ("", None)."""
        templates = self._template_finder.find_templates()
        if not templates:
            return "", None

        if template_name:
            for path in templates:
                if template_name in (path.name, path.stem):
                    return path.name, self._template_finder.read_template(path)
            available = [p.name for p in templates]
            raise ValueError(f"존재하지 않는 PR 템플릿: '{template_name}'. 사용 가능: {available}")

        if len(templates) == 1:
            path: Path = templates[0]
            logger.info("유일한 PR 템플릿 자동 선택: %s", path.name)
            return path.name, self._template_finder.read_template(path)

        names = ", ".join(p.name for p in templates)
        warnings.append(f"⚠️ PR 템플릿이 여러 개입니다 ({names}). template_name으로 지정하세요.")
        return "", None

    async def _existing_description(self) -> str | None:
        try:
            branch = await self._source.current_branch()
        except RuntimeError as e:
            logger.warning("현재 브랜치 확인 실패: %s", e)
            return None
        return await self._pr_host.get_existing_description(branch)
