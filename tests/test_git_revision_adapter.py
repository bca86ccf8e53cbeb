import asyncio

import pytest

from src.adapters.outbound.git_revision_adapter import GitRevisionAdapter, _CommandResult

SHA_A = "a" * 40
SHA_B = "b" * 40
SHA_C = "c" * 40
LOG_FORMAT = "--format=%H%x1f%s"


class ScriptedGit:
    """git 인자 튜플 → 결과 매핑으로 _run_git을 대체합니다."""

    def __init__(self, responses: dict[tuple[str, ...], _CommandResult | Exception]):
        self.responses = responses
        self.calls: list[tuple[str, ...]] = []

    async def __call__(self, *args: str) -> _CommandResult:
        self.calls.append(args)
        response = self.responses.get(args, _CommandResult("", f"unexpected: {args}", 1))
        if isinstance(response, Exception):
            raise response
        return response


def _ok(stdout: str) -> _CommandResult:
    return _CommandResult(stdout=stdout, stderr="", returncode=0)


@pytest.fixture
def adapter():
    return GitRevisionAdapter(working_dir="/repo")


def test_parents_line_success(adapter, monkeypatch):
    git = ScriptedGit({("rev-list", "--parents", "-n", "1", SHA_A): _ok(f"{SHA_A} {SHA_B}")})
    monkeypatch.setattr(adapter, "_run_git", git)

    result = asyncio.run(adapter.get_parents_line(SHA_A))

    assert result.ok
    assert result.text == f"{SHA_A} {SHA_B}"


def test_diff_uses_colorless_show_without_metadata(adapter, monkeypatch):
    git = ScriptedGit({("show", "--format=", "--no-color", SHA_A): _ok("diff --git a/x b/x")})
    monkeypatch.setattr(adapter, "_run_git", git)

    result = asyncio.run(adapter.get_diff(SHA_A))

    assert result.text == "diff --git a/x b/x"
    assert git.calls == [("show", "--format=", "--no-color", SHA_A)]


def test_failed_command_becomes_failure_value(adapter, monkeypatch):
    git = ScriptedGit({
        ("show", "--format=", "--no-color", SHA_A): _CommandResult("", "fatal: bad object", 128),
        ("show", "--format=", "--no-color", SHA_B): RuntimeError("git 명령 timeout"),
    })
    monkeypatch.setattr(adapter, "_run_git", git)

    bad_object = asyncio.run(adapter.get_diff(SHA_A))
    timeout = asyncio.run(adapter.get_diff(SHA_B))

    assert not bad_object.ok and bad_object.error == "fatal: bad object"
    assert not timeout.ok and "timeout" in timeout.error


def test_history_with_count(adapter, monkeypatch):
    git = ScriptedGit({
        ("log", "-n", "2", LOG_FORMAT): _ok(f"{SHA_B}\x1ffeat: b\n{SHA_A}\x1ffix: a"),
    })
    monkeypatch.setattr(adapter, "_run_git", git)

    history = asyncio.run(adapter.get_commit_history(2))

    assert history.messages == ("feat: b", "fix: a")
    assert history.hashes == (SHA_B, SHA_A)
    assert history.count == 2


def test_history_keeps_commits_with_empty_subject(adapter, monkeypatch):
    # 마지막 줄의 빈 제목 뒤 구분자는 출력 strip으로 사라짐
    git = ScriptedGit({
        ("log", "-n", "3", LOG_FORMAT): _ok(f"{SHA_C}\x1ffeat: a\n{SHA_B}\x1f\n{SHA_A}"),
    })
    monkeypatch.setattr(adapter, "_run_git", git)

    history = asyncio.run(adapter.get_commit_history(3))

    assert history.hashes == (SHA_C, SHA_B, SHA_A)
    assert history.messages == ("feat: a", "", "")
    assert len(history.messages) == len(history.hashes)


def test_history_since_last_push(adapter, monkeypatch):
    git = ScriptedGit({
        ("rev-parse", "--abbrev-ref", "HEAD"): _ok("feature/login"),
        ("merge-base", "feature/login", "origin/feature/login"): _ok(SHA_A),
        ("log", f"{SHA_A}..HEAD", LOG_FORMAT): _ok(f"{SHA_B}\x1ffeat: new"),
    })
    monkeypatch.setattr(adapter, "_run_git", git)

    history = asyncio.run(adapter.get_commit_history())

    assert history.messages == ("feat: new",)
    assert history.hashes == (SHA_B,)


def test_history_without_upstream_is_empty(adapter, monkeypatch):
    git = ScriptedGit({("rev-parse", "--abbrev-ref", "HEAD"): _ok("feature/login")})
    monkeypatch.setattr(adapter, "_run_git", git)

    history = asyncio.run(adapter.get_commit_history())

    assert history.count == 0
    assert history.hashes == ()


def test_branch_commit_count_against_remote_default(adapter, monkeypatch):
    git = ScriptedGit({
        ("symbolic-ref", "refs/remotes/origin/HEAD"): _ok("refs/remotes/origin/develop"),
        ("rev-list", "--count", "develop..HEAD"): _ok("4"),
    })
    monkeypatch.setattr(adapter, "_run_git", git)

    assert asyncio.run(adapter.count_branch_commits()) == 4


def test_branch_commit_count_falls_back_to_main(adapter, monkeypatch):
    git = ScriptedGit({("rev-list", "--count", "main..HEAD"): _ok("2")})
    monkeypatch.setattr(adapter, "_run_git", git)

    assert asyncio.run(adapter.count_branch_commits()) == 2
