import re
from dataclasses import dataclass
from enum import Enum

# 7~40자리 16진수 커밋 해시 (대소문자 무시)
_REVISION_ID_PATTERN = re.compile(r"^[0-9a-f]{7,40}$", re.IGNORECASE)

# 다운스트림에 그대로 전달되는 고정 placeholder
INVALID_REVISION_PLACEHOLDER = "[Invalid commit hash - skipped]"
MERGE_EXCLUDED_PLACEHOLDER = "[Merge commit - diff excluded]"
FETCH_ERROR_PLACEHOLDER = "[Error fetching diff]"
EMPTY_REVISION_LABEL = "[empty]"


def is_valid_revision_id(revision_id: object) -> bool:
    """커밋 해시 형식이 유효한지 확인합니다. 문자열이 아니면 항상 False."""
    if not isinstance(revision_id, str):
        return False
    return bool(_REVISION_ID_PATTERN.match(revision_id.strip()))


def is_merge(parents_line: str) -> bool:
    """`<id> <parent1> [<parent2> ...]` 형식에서 부모가 2개 이상이면 머지 커밋."""
    return len(parents_line.split()) > 2


@dataclass(frozen=True)
class FetchResult:
    """외부 revision 조회 결과. 실패는 예외 대신 error 값으로 전달됩니다."""
    text: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, text: str) -> "FetchResult":
        return cls(text=text)

    @classmethod
    def failure(cls, error: str) -> "FetchResult":
        return cls(error=error or "unknown error")


class MergeClassification(Enum):
    MERGE = "merge"
    NOT_MERGE = "not_merge"
    UNKNOWN = "unknown"  # 부모 조회 실패


def classify_parents(fetch: FetchResult) -> MergeClassification:
    """부모 목록 조회 결과를 3상태로 분류합니다.

    조회 실패는 UNKNOWN이며, 호출부에서 "머지 아님"으로 취급합니다 (fail-open).
    머지 여부가 불확실하다는 이유로 PR 설명 생성이 막히면 안 되기 때문입니다.
    """
    if not fetch.ok:
        return MergeClassification.UNKNOWN
    if is_merge(fetch.text):
        return MergeClassification.MERGE
    return MergeClassification.NOT_MERGE


class DiffErrorKind(Enum):
    INVALID_IDENTIFIER = "invalid_identifier"
    FETCH_FAILURE = "fetch_failure"


@dataclass(frozen=True)
class DiffOutcome:
    """revision 하나에 대한 diff 수집 결과"""
    revision_id: str
    text: str
    truncated: bool = False
    error: str | None = None
    error_kind: DiffErrorKind | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def invalid(cls, revision_id: object) -> "DiffOutcome":
        label = str(revision_id) if revision_id else EMPTY_REVISION_LABEL
        return cls(
            revision_id=label,
            text=INVALID_REVISION_PLACEHOLDER,
            error=(
                f'Invalid commit hash format: "{revision_id}". '
                "Expected hexadecimal string (7-40 characters)."
            ),
            error_kind=DiffErrorKind.INVALID_IDENTIFIER,
        )

    @classmethod
    def merge_excluded(cls, revision_id: str) -> "DiffOutcome":
        return cls(revision_id=revision_id, text=MERGE_EXCLUDED_PLACEHOLDER)

    @classmethod
    def fetch_failed(cls, revision_id: str, detail: str) -> "DiffOutcome":
        return cls(
            revision_id=revision_id,
            text=FETCH_ERROR_PLACEHOLDER,
            error=detail,
            error_kind=DiffErrorKind.FETCH_FAILURE,
        )


@dataclass(frozen=True)
class CollectionSummary:
    """diff 수집 배치의 집계 결과"""
    valid: int = 0
    skipped: int = 0
    merge_excluded: int = 0
    binary_filtered: int = 0
    failed: int = 0
    total_size: int = 0
    large_payload: bool = False
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class DiffCollection:
    outcomes: tuple[DiffOutcome, ...] = ()
    summary: CollectionSummary = CollectionSummary()


@dataclass(frozen=True)
class CommitHistory:
    """커밋 제목과 해시 목록 (같은 순서, 최신 커밋 우선)"""
    messages: tuple[str, ...] = ()
    hashes: tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.messages)
