from collections.abc import Sequence

from src.domain.revision import DiffOutcome

CODE_CHANGES_HEADER = "\n\n=== CODE CHANGES ===\n\n"
TRUNCATION_NOTE = "[Note: This diff was truncated due to size limits]\n\n"


class PayloadFormatError(ValueError):
    """diff 결과와 커밋 메시지 개수가 맞지 않을 때 발생합니다."""


class PayloadFormatter:
    """수집된 diff를 커밋 메시지와 짝지어 모델 입력용 텍스트 블록으로 만듭니다."""

    def __init__(self, header: str = CODE_CHANGES_HEADER):
        self._header = header

    def format(self, outcomes: Sequence[DiffOutcome], messages: Sequence[str]) -> str:
        """
        Args:
            outcomes: diff 수집 결과 (입력 순서)
            messages: outcomes[i]에 대응하는 커밋 메시지

        Raises:
            PayloadFormatError: 두 목록의 길이가 다를 때
        """
        if len(outcomes) != len(messages):
            raise PayloadFormatError(
                f"diff 결과({len(outcomes)}건)와 커밋 메시지({len(messages)}건)의 개수가 다릅니다"
            )

        formatted = self._header
        for i, (outcome, message) in enumerate(zip(outcomes, messages), 1):
            formatted += f"Commit {i}: {message}\n"
            formatted += f"Hash: {outcome.revision_id}\n"
            formatted += f"```diff\n{outcome.text}\n```\n\n"
            if outcome.truncated:
                formatted += TRUNCATION_NOTE

        return formatted
