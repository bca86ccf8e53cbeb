import pytest

from src.application.services.payload_formatter import (
    CODE_CHANGES_HEADER,
    TRUNCATION_NOTE,
    PayloadFormatError,
    PayloadFormatter,
)
from src.domain.revision import DiffOutcome


def test_zero_outcomes_render_header_only():
    assert PayloadFormatter().format([], []) == CODE_CHANGES_HEADER


def test_blocks_pair_messages_with_outcomes():
    outcomes = [
        DiffOutcome(revision_id="abc1234", text="+added"),
        DiffOutcome(revision_id="def5678", text="-removed"),
    ]

    payload = PayloadFormatter().format(outcomes, ["feat: add", "fix: remove"])

    assert payload == (
        "\n\n=== CODE CHANGES ===\n\n"
        "Commit 1: feat: add\n"
        "Hash: abc1234\n"
        "```diff\n+added\n```\n\n"
        "Commit 2: fix: remove\n"
        "Hash: def5678\n"
        "```diff\n-removed\n```\n\n"
    )


def test_truncated_outcome_gets_note():
    outcomes = [DiffOutcome(revision_id="abc1234", text="+x", truncated=True)]

    payload = PayloadFormatter().format(outcomes, ["chore: big"])

    assert payload.endswith("```\n\n" + TRUNCATION_NOTE)
    assert payload.count(TRUNCATION_NOTE) == 1


def test_placeholders_are_rendered_like_diffs():
    outcomes = [DiffOutcome.fetch_failed("abc1234", "boom")]

    payload = PayloadFormatter().format(outcomes, ["fix: x"])

    assert "```diff\n[Error fetching diff]\n```" in payload


def test_mismatched_lengths_raise():
    outcomes = [DiffOutcome(revision_id="abc1234", text="+x")]

    with pytest.raises(PayloadFormatError):
        PayloadFormatter().format(outcomes, [])
