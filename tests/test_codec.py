"""Tests for the row codec — both tasks-file formats and the sidecar files."""

from __future__ import annotations

import pytest

from knecht.errors import InvalidNumber, MalformedRecord, UnknownStatus
from knecht.tasks import Format, Status, Task, decode_tasks, detect_format, encode_task, encode_tasks
from knecht.tasks.codec import (
    decode_blockers,
    decode_last_id,
    encode_blockers,
    encode_last_id,
    split_legacy,
)


def _task(task_id: int = 1, title: str = "Task", description: str = "", pain: int = 0,
          status: Status = Status.OPEN) -> Task:
    return Task(id=task_id, status=status, title=title, description=description, pain_count=pain)


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


class TestEncode:
    def test_fresh_task_writes_all_five_fields(self):
        assert encode_task(_task(1, "Write docs")) == '1,open,"Write docs","",\n'

    def test_pain_and_description(self):
        row = encode_task(_task(7, "Fix", "Broken on CI", pain=3, status=Status.DELIVERED))
        assert row == '7,delivered,"Fix","Broken on CI",3\n'

    def test_quotes_are_doubled(self):
        assert encode_task(_task(2, 'Say "hi"')) == '2,open,"Say ""hi""","",\n'

    def test_newlines_and_separators_kept_literally(self):
        row = encode_task(_task(3, "a,b|c", "line one\nline, two"))
        assert row == '3,open,"a,b|c","line one\nline, two",\n'

    def test_encode_tasks_concatenates_rows(self):
        text = encode_tasks([_task(1, "A"), _task(2, "B", status=Status.DONE)])
        assert text == '1,open,"A","",\n2,done,"B","",\n'


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "title, description",
    [
        ("plain", ""),
        ("comma, inside", "also, here"),
        ("pipe | inside", "curl | sh"),
        ('quote " inside', 'he said ""twice""'),
        ("back\\slash", "C:\\path\\to\\file\\"),
        ("mixed \\| and \\\\", "line 1\nline 2\n\nline 4"),
        ("trailing backslash\\", 'ends with quote"'),
    ],
)
def test_round_trip(title, description):
    original = [_task(4, title, description, pain=2)]
    fmt, decoded = decode_tasks(encode_tasks(original))
    assert fmt is Format.CURRENT
    assert decoded == original
    # re-encoding the decoded task is stable
    assert encode_tasks(decoded) == encode_tasks(original)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


class TestDetectFormat:
    def test_pipe_first_is_legacy(self):
        assert detect_format("1|open|Task, with comma\n") is Format.LEGACY

    def test_comma_first_is_current(self):
        assert detect_format('1,open,"Task | with pipe","",\n') is Format.CURRENT

    def test_leading_blank_lines_ignored(self):
        assert detect_format("\n\n12|done|Old\n") is Format.LEGACY

    def test_empty_is_current(self):
        assert detect_format("") is Format.CURRENT
        assert decode_tasks("") == (Format.CURRENT, [])
        assert decode_tasks(None) == (Format.CURRENT, [])


# ---------------------------------------------------------------------------
# Legacy format
# ---------------------------------------------------------------------------


class TestLegacy:
    def test_three_field_rows_get_defaults(self):
        fmt, tasks = decode_tasks("1|open|First\n2|done|Second\n")
        assert fmt is Format.LEGACY
        assert tasks == [
            _task(1, "First"),
            _task(2, "Second", status=Status.DONE),
        ]

    def test_four_and_five_field_rows(self):
        _, tasks = decode_tasks("1|open|First|Some detail\n2|delivered|Second|More|4\n")
        assert tasks[0].description == "Some detail"
        assert tasks[0].pain_count == 0
        assert tasks[1].status is Status.DELIVERED
        assert tasks[1].pain_count == 4

    def test_escaped_pipe_and_backslash(self):
        _, tasks = decode_tasks("1|open|Fix \\| parser|Use a \\\\ path|2\n")
        assert tasks[0].title == "Fix | parser"
        assert tasks[0].description == "Use a \\ path"
        assert tasks[0].pain_count == 2

    def test_other_backslash_sequences_are_literal(self):
        _, tasks = decode_tasks("1|open|Test\\a\\b\\c|Desc\\x\\y\n")
        assert tasks[0].title == "Test\\a\\b\\c"
        assert tasks[0].description == "Desc\\x\\y"

    def test_trailing_backslash_is_literal(self):
        assert split_legacy("1|open|Title\\") == ["1", "open", "Title\\"]

    def test_escaped_backslash_before_separator(self):
        # \\| is an escaped backslash followed by a real separator
        assert split_legacy("1|open|A\\\\|B") == ["1", "open", "A\\", "B"]

    def test_crlf_line_endings(self):
        _, tasks = decode_tasks("1|open|First\r\n2|open|Second\r\n")
        assert [t.title for t in tasks] == ["First", "Second"]

    def test_legacy_upgrade_writes_current_format(self):
        _, tasks = decode_tasks("1|open|a \\| b|x, y|3\n")
        assert encode_tasks(tasks) == '1,open,"a | b","x, y",3\n'


# ---------------------------------------------------------------------------
# Current format
# ---------------------------------------------------------------------------


class TestCurrent:
    def test_missing_trailing_fields_tolerated(self):
        _, tasks = decode_tasks('1,open,"Only title"\n')
        assert tasks == [_task(1, "Only title")]

    def test_unquoted_fields_accepted(self):
        _, tasks = decode_tasks("3,done,Plain title,,\n")
        assert tasks == [_task(3, "Plain title", status=Status.DONE)]

    def test_blank_lines_skipped(self):
        _, tasks = decode_tasks('1,open,"A","",\n\n2,open,"B","",\n')
        assert [t.id for t in tasks] == [1, 2]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_too_few_fields(self):
        with pytest.raises(MalformedRecord) as exc:
            decode_tasks('1,open,"A","",\n2,open\n')
        assert exc.value.line == 2
        assert exc.value.kind == "malformed_record"

    def test_too_few_fields_legacy(self):
        with pytest.raises(MalformedRecord) as exc:
            decode_tasks("1|open|A\nBAD LINE\n")
        assert exc.value.line == 2

    def test_too_many_fields(self):
        with pytest.raises(MalformedRecord):
            decode_tasks('1,open,"A","",,extra\n')

    def test_unknown_status(self):
        with pytest.raises(UnknownStatus) as exc:
            decode_tasks('1,open,"A","",\n2,claimed,"B","",\n')
        assert exc.value.line == 2

    def test_non_numeric_id(self):
        with pytest.raises(InvalidNumber) as exc:
            decode_tasks('abc,open,"A","",\n')
        assert exc.value.line == 1

    def test_zero_id(self):
        with pytest.raises(InvalidNumber):
            decode_tasks('0,open,"A","",\n')

    def test_non_numeric_pain(self):
        with pytest.raises(InvalidNumber):
            decode_tasks("1|open|A|desc|lots\n")

    def test_empty_title(self):
        with pytest.raises(MalformedRecord):
            decode_tasks('1,open,"","",\n')

    def test_duplicate_id(self):
        with pytest.raises(MalformedRecord) as exc:
            decode_tasks('5,open,"A","",\n5,open,"B","",\n')
        assert exc.value.line == 2

    def test_line_number_counts_multiline_rows(self):
        text = '1,open,"A","first\nsecond",\n2,open\n'
        with pytest.raises(MalformedRecord) as exc:
            decode_tasks(text)
        assert exc.value.line == 3

    def test_unterminated_quote(self):
        with pytest.raises(MalformedRecord):
            decode_tasks('1,open,"never closed\n')


# ---------------------------------------------------------------------------
# Sidecar files
# ---------------------------------------------------------------------------


class TestBlockersFile:
    def test_decode(self):
        edges = decode_blockers("task-2|task-1\n\ntask-3|task-1\ntask-3|task-2\n")
        assert edges == {2: {1}, 3: {1, 2}}

    def test_encode_is_sorted(self):
        assert encode_blockers({3: {2, 1}, 1: set(), 2: {1}}) == (
            "task-2|task-1\ntask-3|task-1\ntask-3|task-2\n"
        )

    def test_malformed_lines_are_skipped(self, caplog):
        text = "task-1|task-2\n\nmalformed-line\ntask-1|\n|task-2\ntask-4|task-x\ntask-3|task-2\n"
        assert decode_blockers(text) == {1: {2}, 3: {2}}
        assert "blockers:3" in caplog.text

    def test_self_edge_is_dropped(self, caplog):
        assert decode_blockers("task-3|task-3\ntask-3|task-1\n") == {3: {1}}
        assert "self-edge task-3" in caplog.text


class TestLastId:
    def test_missing_or_empty_is_zero(self):
        assert decode_last_id(None) == 0
        assert decode_last_id("") == 0

    def test_round_trip(self):
        assert decode_last_id(encode_last_id(42)) == 42

    def test_garbage(self):
        with pytest.raises(InvalidNumber):
            decode_last_id("forty-two\n")
