import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from src.application.ports.revision_source_port import RevisionSourcePort
from src.domain.diff_text import TruncationPolicy, has_binary_marker, strip_binary, truncate_diff
from src.domain.revision import (
    CollectionSummary,
    DiffCollection,
    DiffOutcome,
    FetchResult,
    MergeClassification,
    classify_parents,
    is_valid_revision_id,
)

logger = logging.getLogger(__name__)

LARGE_DIFF_WARNING_THRESHOLD = 50000


@dataclass
class _SummaryAccumulator:
    """수집 1회 동안만 사용하는 집계 값"""
    valid: int = 0
    skipped: int = 0
    merge_excluded: int = 0
    binary_filtered: int = 0
    failed: int = 0
    total_size: int = 0
    outcomes: list[DiffOutcome] = field(default_factory=list)

    def add_valid(self, outcome: DiffOutcome, *, counts_size: bool = True) -> None:
        self.outcomes.append(outcome)
        self.valid += 1
        if counts_size:
            self.total_size += len(outcome.text)

    def add_failed(self, outcome: DiffOutcome) -> None:
        self.outcomes.append(outcome)
        self.skipped += 1
        self.failed += 1

    def to_summary(self, large_diff_threshold: int) -> CollectionSummary:
        large_payload = self.total_size > large_diff_threshold
        warnings: list[str] = []

        if self.merge_excluded > 0:
            warnings.append(f"⚠️ 머지 커밋 {self.merge_excluded}건의 diff가 제외되었습니다.")
        if self.binary_filtered > 0:
            warnings.append(
                f"⚠️ 커밋 {self.binary_filtered}건에서 바이너리 파일이 감지되어 diff에서 제거되었습니다."
            )
        if large_payload:
            warnings.append(
                f"⚠️ 대용량 diff: 총 {self.total_size}자 (기준: {large_diff_threshold}자). "
                "모델 입력 한도를 넘을 수 있습니다. 커밋 수를 줄이거나 diff 없이 다시 시도하세요."
            )
        if self.failed > 0:
            warnings.append(f"⚠️ 커밋 {self.failed}건의 diff 조회에 실패했습니다. 서버 로그를 확인하세요.")

        return CollectionSummary(
            valid=self.valid,
            skipped=self.skipped,
            merge_excluded=self.merge_excluded,
            binary_filtered=self.binary_filtered,
            failed=self.failed,
            total_size=self.total_size,
            large_payload=large_payload,
            warnings=tuple(warnings),
        )


class CollectCommitDiffsUseCase:
    """커밋 목록의 diff를 순서대로 수집하고 크기 한도에 맞게 축약하는 Use Case"""

    def __init__(
        self,
        revision_source: RevisionSourcePort,
        policy: TruncationPolicy = TruncationPolicy(),
        large_diff_threshold: int = LARGE_DIFF_WARNING_THRESHOLD,
    ):
        self._source = revision_source
        self._policy = policy
        self._large_diff_threshold = large_diff_threshold

    async def execute(self, revision_ids: list[str], include_merge_diffs: bool = False) -> DiffCollection:
        """
        커밋별 diff를 입력 순서대로 하나씩 수집합니다.

        Args:
            revision_ids: 커밋 해시 목록
            include_merge_diffs: False이면 머지 커밋의 diff는 placeholder로 대체

        Returns:
            DiffCollection: 입력과 같은 순서/개수의 결과 + 집계
        """
        if not isinstance(revision_ids, (list, tuple)):
            logger.error("잘못된 입력: revision_ids는 리스트여야 합니다 (type=%s)", type(revision_ids).__name__)
            return DiffCollection()

        if not revision_ids:
            logger.warning("diff를 조회할 커밋이 없습니다")
            return DiffCollection()

        acc = _SummaryAccumulator()
        total = len(revision_ids)

        for index, revision_id in enumerate(revision_ids, 1):
            logger.info("커밋 diff 조회 중... (%d/%d)", index, total)
            await self._collect_one(revision_id, include_merge_diffs, acc)

        summary = acc.to_summary(self._large_diff_threshold)
        if summary.skipped > 0:
            logger.warning(
                "diff 수집 완료: %d/%d 커밋 (%d자), %d건 건너뜀",
                summary.valid, total, summary.total_size, summary.skipped,
            )
        else:
            logger.info("diff 수집 완료: %d 커밋 (%d자)", total, summary.total_size)
        for warning in summary.warnings:
            logger.warning(warning)

        return DiffCollection(outcomes=tuple(acc.outcomes), summary=summary)

    async def _collect_one(
        self, revision_id: str, include_merge_diffs: bool, acc: _SummaryAccumulator,
    ) -> None:
        if not is_valid_revision_id(revision_id):
            logger.warning("잘못된 커밋 해시 건너뜀: %r", revision_id)
            acc.add_failed(DiffOutcome.invalid(revision_id))
            return

        revision_id = revision_id.strip()

        if await self._is_merge(revision_id) and not include_merge_diffs:
            logger.info("머지 커밋 diff 제외: %s", revision_id)
            acc.merge_excluded += 1
            acc.add_valid(DiffOutcome.merge_excluded(revision_id), counts_size=False)
            return

        fetch = await self._fetch(self._source.get_diff, revision_id)
        if not fetch.ok:
            detail = f"Failed to fetch diff for commit {revision_id}: {fetch.error}"
            logger.warning(detail)
            acc.add_failed(DiffOutcome.fetch_failed(revision_id, fetch.error))
            return

        if has_binary_marker(fetch.text):
            acc.binary_filtered += 1

        result = truncate_diff(strip_binary(fetch.text), self._policy)
        if result.was_truncated:
            logger.info("diff 축약: %s (%d → %d자)", revision_id, len(fetch.text), len(result.text))

        acc.add_valid(DiffOutcome(
            revision_id=revision_id,
            text=result.text,
            truncated=result.was_truncated,
        ))

    async def _is_merge(self, revision_id: str) -> bool:
        """부모 조회 실패는 머지가 아닌 것으로 간주합니다."""
        parents = await self._fetch(self._source.get_parents_line, revision_id)
        classification = classify_parents(parents)
        if classification is MergeClassification.UNKNOWN:
            logger.warning("머지 여부 확인 실패, 일반 커밋으로 처리: %s (%s)", revision_id, parents.error)
        return classification is MergeClassification.MERGE

    @staticmethod
    async def _fetch(
        query: Callable[[str], Awaitable[FetchResult]], revision_id: str,
    ) -> FetchResult:
        """조회 중 발생한 예외도 FetchResult 실패 값으로 변환합니다."""
        try:
            return await query(revision_id)
        except Exception as e:
            return FetchResult.failure(f"{type(e).__name__}: {e}")
