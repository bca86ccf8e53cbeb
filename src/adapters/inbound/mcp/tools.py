import logging
import os
import sys
import traceback
from collections.abc import Sequence
from pathlib import Path

from mcp.server import Server
from mcp.types import TextContent

from src.application.services.payload_formatter import PayloadFormatError
from src.configuration.container import build_container
from src.domain.pull_request import PullRequestDraft
from src.domain.revision import CollectionSummary, DiffOutcome

logger = logging.getLogger(__name__)

_MISSING_MESSAGE = "(no commit message)"


def _validate_repository_path(
    repository_path: str, git_repos: dict[str, str],
) -> str | None:
    """명시적으로 지정된 repository_path가 GIT_REPOSITORIES allowlist에 포함되는지 검증합니다.

    Returns:
        None이면 유효, 문자열이면 에러 메시지
    """
    if not git_repos:
        # allowlist가 비어있으면 검증 스킵 (환경변수 미설정)
        return None

    resolved = str(Path(repository_path).resolve())
    for _, allowed_path in git_repos.items():
        allowed_resolved = str(Path(allowed_path).resolve())
        if resolved == allowed_resolved or resolved.startswith(allowed_resolved + os.sep):
            return None

    repos_list = ", ".join(git_repos.values())
    return (
        f"# ⛔ repository_path 접근 거부\n\n"
        f"**지정 경로:** `{repository_path}`\n\n"
        f"보안 정책에 따라 `GIT_REPOSITORIES`에 등록된 경로만 허용됩니다.\n\n"
        f"**등록된 경로:** {repos_list}\n"
    )


def _resolve_repository_path(arguments: dict, git_repos: dict[str, str]) -> str:
    """repository_path 인자 또는 GIT_REPOSITORIES 프로젝트명을 경로로 변환합니다."""
    repository_path = (arguments.get("repository_path") or "").strip()
    if repository_path in git_repos:
        return git_repos[repository_path]
    return repository_path


def _parse_count(arguments: dict) -> int | None:
    raw = arguments.get("count")
    if raw in (None, ""):
        return None
    count = int(raw)
    if count < 0:
        raise ValueError(f"count는 0 이상이어야 합니다: {count}")
    return count or None


def _pair_commit_messages(revision_ids, messages: list[str] | None) -> list[str]:
    """revision_ids와 같은 순서의 커밋 메시지 목록을 만듭니다.

    개수가 맞지 않으면 diff를 조회하기 전에 거부합니다.
    """
    if not isinstance(revision_ids, list):
        # 리스트가 아닌 입력은 수집 단계에서 빈 결과로 처리됨
        return []
    if not messages:
        return [_MISSING_MESSAGE] * len(revision_ids)
    if len(messages) != len(revision_ids):
        raise PayloadFormatError(
            f"commit_messages({len(messages)}건)와 revision_ids({len(revision_ids)}건)의 개수가 다릅니다"
        )
    return [message or _MISSING_MESSAGE for message in messages]


def _format_summary_table(summary: CollectionSummary) -> str:
    text = "| 항목 | 내용 |\n"
    text += "|------|------|\n"
    text += f"| **성공** | {summary.valid} |\n"
    text += f"| **건너뜀** | {summary.skipped} |\n"
    text += f"| **머지 제외** | {summary.merge_excluded} |\n"
    text += f"| **바이너리 제거** | {summary.binary_filtered} |\n"
    text += f"| **조회 실패** | {summary.failed} |\n"
    text += f"| **전체 크기** | {summary.total_size:,}자 |\n"
    return text


def _format_warnings(warnings: tuple[str, ...]) -> str:
    if not warnings:
        return ""
    return "\n### ⚠️ 경고\n\n" + "".join(f"- {w}\n" for w in warnings)


def _format_failures(outcomes: Sequence[DiffOutcome]) -> str:
    failed = [outcome for outcome in outcomes if outcome.is_error]
    if not failed:
        return ""
    text = "\n### ❌ 실패한 커밋\n\n"
    for outcome in failed:
        text += f"- `{outcome.revision_id}`: {outcome.error}\n"
    return text


def _format_draft(draft: PullRequestDraft) -> str:
    text = "# 📝 PR 설명 초안\n\n"
    text += "| 항목 | 내용 |\n"
    text += "|------|------|\n"
    text += f"| **커밋 수** | {len(draft.commit_messages)} |\n"
    text += f"| **PR 템플릿** | {draft.template_name or '(없음)'} |\n"
    text += f"| **모드** | {'기존 PR 갱신' if draft.is_update else '신규 작성'} |\n"
    if draft.summary is not None:
        text += f"| **diff 크기** | {draft.summary.total_size:,}자 |\n"
    text += _format_warnings(draft.warnings)

    text += "\n## 커밋 분류 기반 설명\n\n"
    text += draft.description + "\n"
    text += "\n---\n\n"
    text += "## 🤖 PR 설명 생성 프롬프트\n\n"
    text += "아래 프롬프트의 지시에 따라 PR 설명을 작성하세요.\n\n"
    text += f"````text\n{draft.prompt}\n````\n"
    return text


def register_tools(app: Server) -> None:
    """MCP Tool 핸들러를 서버에 등록합니다."""

    # 로그에서 축약할 필드 (값이 긴 텍스트)
    _LONG_TEXT_FIELDS = {"developer_description", "commit_messages"}

    def _mask_arguments(arguments: dict) -> dict:
        """로깅용으로 긴 텍스트 필드를 축약합니다."""
        masked = {}
        for key, value in arguments.items():
            if key in _LONG_TEXT_FIELDS:
                if isinstance(value, str) and len(value) > 20:
                    masked[key] = f"{value[:20]}... ({len(value)}자)"
                elif isinstance(value, list):
                    masked[key] = f"[{len(value)}건]"
                else:
                    masked[key] = value
            else:
                masked[key] = value
        return masked

    @app.call_tool()
    async def call_tool(name: str, arguments: dict):
        try:
            container = build_container()
            logger.info("=" * 60)
            logger.info("🔧 Tool 호출: %s", name)
            logger.info("인자: %s", _mask_arguments(arguments))
            logger.info("환경: %s", container.settings.app_env)
            logger.info("=" * 60)

            git_repos = container.settings.git_repositories
            repository_path = _resolve_repository_path(arguments, git_repos)
            if repository_path:
                path_error = _validate_repository_path(repository_path, git_repos)
                if path_error:
                    return [TextContent(type="text", text=path_error)]

            if name == "collect_commit_diffs":
                services = container.for_repository(repository_path)
                revision_ids = arguments.get("revision_ids") or []
                include_merge_diffs = bool(arguments.get("include_merge_diffs", False))

                if revision_ids:
                    messages = _pair_commit_messages(revision_ids, arguments.get("commit_messages"))
                else:
                    history = await services.revision_source.get_commit_history(_parse_count(arguments))
                    revision_ids = list(history.hashes)
                    messages = _pair_commit_messages(revision_ids, list(history.messages))

                if not revision_ids:
                    return [TextContent(
                        type="text",
                        text="# ⚠️ 조회할 커밋이 없습니다\n\n"
                             "`revision_ids`를 지정하거나 `count`로 읽을 커밋 수를 지정하세요.",
                    )]

                collection = await services.collect_commit_diffs_use_case.execute(
                    revision_ids, include_merge_diffs=include_merge_diffs,
                )
                payload = container.payload_formatter.format(collection.outcomes, messages)
                logger.info(
                    "✅ Tool 실행 완료: %d건 diff 수집 (%d자)",
                    len(collection.outcomes), collection.summary.total_size,
                )

                formatted_text = "# 📦 커밋 diff 수집 결과\n\n"
                formatted_text += _format_summary_table(collection.summary)
                formatted_text += _format_warnings(collection.summary.warnings)
                formatted_text += _format_failures(collection.outcomes)
                formatted_text += "\n---\n"
                formatted_text += payload

                return [TextContent(type="text", text=formatted_text)]

            if name == "draft_pr_description":
                services = container.for_repository(repository_path)
                draft = await services.draft_pr_description_use_case.execute(
                    count=_parse_count(arguments),
                    read_diffs=bool(arguments.get("read_diffs", False)),
                    developer_description=(arguments.get("developer_description") or "").strip(),
                    template_name=(arguments.get("template_name") or "").strip(),
                    template_language=(arguments.get("template_language") or "").strip(),
                )
                logger.info(
                    "✅ Tool 실행 완료: PR 설명 초안 (commits=%d, update=%s)",
                    len(draft.commit_messages), draft.is_update,
                )
                return [TextContent(type="text", text=_format_draft(draft))]

            if name == "list_pr_templates":
                services = container.for_repository(repository_path)
                templates = services.template_finder.find_templates()

                if not templates:
                    return [TextContent(type="text", text="PR 템플릿이 없습니다.")]

                formatted_text = "# 📄 PR 템플릿 목록\n\n"
                formatted_text += "| # | 파일명 | 경로 |\n"
                formatted_text += "|---|--------|------|\n"
                for i, path in enumerate(templates, 1):
                    formatted_text += f"| {i} | {path.name} | `{path}` |\n"

                return [TextContent(type="text", text=formatted_text)]

            if name == "reload_prompt_templates":
                result = container.reload_prompt_templates_use_case.execute()
                logger.info("✅ Tool 실행 완료: 프롬프트 템플릿 리로드 (%s)", result["templates"])

                formatted_text = "# ✅ 프롬프트 템플릿 리로드 완료\n\n"
                formatted_text += "| 항목 | 내용 |\n"
                formatted_text += "|------|------|\n"
                formatted_text += f"| **템플릿** | {', '.join(result['templates'])} |\n"
                formatted_text += f"| **pr_description 길이** | {result['pr_description_body_length']}자 |\n"

                return [TextContent(type="text", text=formatted_text)]

            raise ValueError(f"알 수 없는 tool: {name}")

        except Exception as e:
            logger.error("=" * 60)
            logger.error("❌ Tool 실행 실패!")
            logger.error("Tool: %s", name)
            logger.error("오류 타입: %s", type(e).__name__)
            logger.error("오류 메시지: %s", str(e))
            logger.error("=" * 60)
            traceback.print_exc(file=sys.stderr)

            # MCP 표준 형식으로 에러 메시지 반환
            error_message = f"""# ❌ 오류 발생

**Tool:** {name}
**오류 타입:** {type(e).__name__}
**오류 메시지:** {str(e)}

자세한 내용은 서버 로그를 확인하세요.
"""
            return [TextContent(
                type="text",
                text=error_message
            )]

    @app.list_tools()
    async def list_tools():
        from mcp.types import Tool

        repository_path_schema = {
            "type": "string",
            "description": "git 저장소 경로 또는 GIT_REPOSITORIES 프로젝트명 (선택, 생략 시 GIT_REPOSITORY_PATH)",
        }
        count_schema = {
            "type": "integer",
            "description": "HEAD부터 읽을 커밋 수 (선택, 생략 시 마지막 push 이후 커밋)",
        }

        return [
            Tool(
                name="collect_commit_diffs",
                description="""커밋별 diff를 수집해 모델 입력용 텍스트로 반환합니다.

커밋당 diff는 MAX_DIFF_CHARS(기본 8000자), 파일당 MAX_LINES_PER_FILE(기본 40줄)로 축약됩니다.
머지 커밋 diff는 기본 제외, 바이너리 파일 내용은 항상 제거됩니다.
revision_ids 미지정 시 count 또는 마지막 push 이후 커밋을 사용합니다.""",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "revision_ids": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "커밋 해시 목록 (7~40자리 16진수)",
                        },
                        "commit_messages": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "revision_ids와 같은 순서의 커밋 메시지 (선택)",
                        },
                        "count": count_schema,
                        "include_merge_diffs": {
                            "type": "boolean",
                            "description": "true: 머지 커밋 diff도 포함 (기본값 false)",
                        },
                        "repository_path": repository_path_schema,
                    },
                },
            ),
            Tool(
                name="draft_pr_description",
                description="""커밋 히스토리로 PR 설명 초안과 생성 프롬프트를 만듭니다.

커밋을 conventional commit 타입별로 분류하고, .github의 PR 템플릿을 채우는 프롬프트를 반환합니다.
read_diffs=true이면 diff를 포함하고, 브랜치에 기존 PR이 있으면 갱신 모드로 작성합니다.""",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "count": count_schema,
                        "read_diffs": {
                            "type": "boolean",
                            "description": "true: 커밋 diff 포함 (토큰 소모 증가)",
                        },
                        "developer_description": {
                            "type": "string",
                            "description": "작업 내용에 대한 개발자 설명 (선택)",
                        },
                        "template_name": {
                            "type": "string",
                            "description": "PR 템플릿 파일명 (템플릿이 여러 개일 때)",
                        },
                        "template_language": {
                            "type": "string",
                            "description": "PR 설명 언어 코드 (예: en, ko, ja. 생략 시 TEMPLATE_LANGUAGE)",
                        },
                        "repository_path": repository_path_schema,
                    },
                },
            ),
            Tool(
                name="list_pr_templates",
                description="""저장소의 .github 폴더에서 PR 템플릿 파일 목록을 조회합니다.""",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "repository_path": repository_path_schema,
                    },
                },
            ),
            Tool(
                name="reload_prompt_templates",
                description="""프롬프트 템플릿 YAML 파일을 핫 리로드합니다. 서버 재시작 없이 config/prompt_templates.yaml 변경 반영.""",
                inputSchema={
                    "type": "object",
                    "properties": {},
                },
            ),
        ]
