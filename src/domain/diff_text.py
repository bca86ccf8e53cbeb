from dataclasses import dataclass

BINARY_MARKER = "Binary files"
FILE_HEADER_PREFIX = "diff --git"
# 파일 구조 라인: 항상 출력, 파일별 본문 한도에 포함되지 않음
STRUCTURAL_PREFIXES = (FILE_HEADER_PREFIX, "index ", "---", "+++")

DEFAULT_MAX_TOTAL_SIZE = 8000
DEFAULT_MAX_LINES_PER_FILE = 40


@dataclass(frozen=True)
class TruncationPolicy:
    """diff 축약 한도 (문자 수 / 파일별 본문 라인 수)"""
    max_total_size: int = DEFAULT_MAX_TOTAL_SIZE
    max_lines_per_file: int = DEFAULT_MAX_LINES_PER_FILE

    def __post_init__(self) -> None:
        if self.max_total_size <= 0:
            raise ValueError(f"max_total_size는 양수여야 합니다: {self.max_total_size}")
        if self.max_lines_per_file <= 0:
            raise ValueError(f"max_lines_per_file는 양수여야 합니다: {self.max_lines_per_file}")


@dataclass(frozen=True)
class TruncationResult:
    text: str
    was_truncated: bool  # 전체 한도 초과로 중단된 경우에만 True


def has_binary_marker(diff_text: str) -> bool:
    """`Binary files`로 시작하는 라인이 있는지 확인합니다."""
    return any(line.startswith(BINARY_MARKER) for line in diff_text.split("\n"))


def strip_binary(diff_text: str) -> str:
    """바이너리 파일 섹션의 내용을 제거합니다. `Binary files` 라인 자체는 남깁니다."""
    kept: list[str] = []
    in_binary = False

    for line in diff_text.split("\n"):
        if line.startswith(BINARY_MARKER):
            kept.append(line)
            in_binary = True
            continue

        if line.startswith(FILE_HEADER_PREFIX):
            in_binary = False

        if not in_binary:
            kept.append(line)

    return "\n".join(kept)


def _omitted_lines_notice(count: int) -> str:
    return f"... ({count} more lines omitted)"


def _file_notice(body_lines: int, max_lines_per_file: int) -> str | None:
    """파일 본문이 한도를 넘었으면 생략 안내 문구를 반환합니다."""
    if body_lines > max_lines_per_file:
        return _omitted_lines_notice(body_lines - max_lines_per_file)
    return None


def _remaining_body_lines(lines: list[str], start: int) -> int:
    """start부터 다음 `diff --git` 전까지의 본문 라인 수"""
    count = 0
    for line in lines[start:]:
        if line.startswith(FILE_HEADER_PREFIX):
            break
        if not line.startswith(STRUCTURAL_PREFIXES):
            count += 1
    return count


def truncate_diff(diff_text: str, policy: TruncationPolicy = TruncationPolicy()) -> TruncationResult:
    """diff를 한도 내로 축약합니다. 파일 헤더 구조는 유지하고 파일별 본문은 앞부분만 남깁니다.

    전체 한도 검사가 파일별 한도보다 먼저 적용되며, 초과 시 즉시 중단합니다.
    파일별 생략 안내도 출력 크기에 포함되므로 결과는 전체 한도와 마지막 안내 한 줄을 넘지 않습니다.
    was_truncated는 전체 한도로 중단된 경우에만 True입니다.
    파일별 생략만 발생한 경우는 False로 보고합니다 (기존 소비자 호환).
    """
    if len(diff_text) <= policy.max_total_size:
        return TruncationResult(text=diff_text, was_truncated=False)

    lines = diff_text.split("\n")
    result: list[str] = []
    emitted_size = 0  # 출력 크기 (생략 안내 포함)
    kept_size = 0  # 원본에서 남긴 문자 수
    body_lines = 0
    max_size = policy.max_total_size
    max_lines = policy.max_lines_per_file

    def cut_off(index: int) -> TruncationResult:
        # 현재 파일의 남은 본문까지 포함해서 생략 라인 수를 계산. 한도에 들어갈 때만 출력
        file_total = body_lines + _remaining_body_lines(lines, index)
        if file_total > max_lines:
            notice = _omitted_lines_notice(file_total - min(body_lines, max_lines))
            if emitted_size + len(notice) + 1 <= max_size:
                result.append(notice)
        omitted_chars = max(len(diff_text) - kept_size, 0)
        result.append(
            f"\n... [Diff truncated: {omitted_chars} characters omitted "
            f"from {len(lines) - index} remaining lines]"
        )
        return TruncationResult(text="\n".join(result), was_truncated=True)

    for index, line in enumerate(lines):
        if line.startswith(FILE_HEADER_PREFIX):
            notice = _file_notice(body_lines, max_lines)
            if notice is not None:
                if emitted_size + len(notice) + 1 > max_size:
                    return cut_off(index)
                result.append(notice)
                emitted_size += len(notice) + 1
            body_lines = 0

        if emitted_size + len(line) + 1 > max_size:
            return cut_off(index)

        if line.startswith(STRUCTURAL_PREFIXES):
            result.append(line)
            emitted_size += len(line) + 1
            kept_size += len(line) + 1
            continue

        body_lines += 1
        if body_lines <= max_lines:
            result.append(line)
            emitted_size += len(line) + 1
            kept_size += len(line) + 1

    notice = _file_notice(body_lines, max_lines)
    if notice is not None:
        result.append(notice)
    return TruncationResult(text="\n".join(result), was_truncated=False)
