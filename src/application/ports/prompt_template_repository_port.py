from typing import Protocol

from src.domain.pull_request import PromptTemplate


class PromptTemplateRepositoryPort(Protocol):
    """프롬프트 템플릿 저장소 계약"""

    def get_template(self, name: str) -> PromptTemplate:
        """이름에 해당하는 프롬프트 템플릿을 반환합니다."""
        ...

    def template_names(self) -> list[str]:
        ...

    def reload(self) -> None:
        """캐시를 무효화하고 설정 파일을 다시 로드합니다."""
        ...
