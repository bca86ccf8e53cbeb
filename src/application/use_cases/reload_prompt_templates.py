import logging

from src.application.ports.prompt_template_repository_port import PromptTemplateRepositoryPort
from src.application.use_cases.draft_pr_description import PR_DESCRIPTION_PROMPT

logger = logging.getLogger(__name__)


class ReloadPromptTemplatesUseCase:
    """프롬프트 템플릿 캐시를 무효화하고 다시 로드하는 Use Case"""

    def __init__(self, template_repo: PromptTemplateRepositoryPort):
        self._repo = template_repo

    def execute(self) -> dict:
        logger.info("프롬프트 템플릿 리로드 실행")
        self._repo.reload()

        # 검증: 로드 가능한지 확인
        names = self._repo.template_names()
        pr_prompt = self._repo.get_template(PR_DESCRIPTION_PROMPT)

        return {
            "status": "success",
            "templates": names,
            "pr_description_body_length": len(pr_prompt.body),
        }
