import logging

from jinja2 import BaseLoader, Environment, Undefined

from src.application.ports.prompt_template_repository_port import PromptTemplateRepositoryPort

logger = logging.getLogger(__name__)


class LoggingUndefined(Undefined):
    """미치환 변수 접근 시 경고 로그를 출력합니다."""
    def __str__(self) -> str:
        logger.warning("템플릿 미치환 변수: %s", self._undefined_name)
        return ""


class PromptRenderer:
    """Jinja2 기반 프롬프트 렌더러"""

    def __init__(self, template_repo: PromptTemplateRepositoryPort):
        self._repo = template_repo
        # diff/마크다운 원문을 그대로 넣어야 하므로 autoescape 끔
        self._env = Environment(
            loader=BaseLoader(),
            undefined=LoggingUndefined,
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_name: str, variables: dict[str, object]) -> str:
        """이름에 해당하는 프롬프트 템플릿을 렌더링합니다."""
        prompt_template = self._repo.get_template(template_name)
        template = self._env.from_string(prompt_template.body)
        rendered = template.render(**variables)
        logger.info("프롬프트 렌더링 완료: template=%s, 길이=%d", template_name, len(rendered))
        return rendered
