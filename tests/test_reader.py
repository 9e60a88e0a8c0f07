# TaskMirror test scripts
from __future__ import annotations

from tm_platform.orchestrator._reader import parse_line, read_items
from tm_platform.orchestrator._types import SOURCE_GTASKS

META = '{"id":"T1","source":"google-tasks","title":"Buy milk","link":"https://x/T1","heading":"## Inbox","completed":false}'


def test_reads_synced_lines_in_document_order() -> None:
    text = "\n".join(
        [
            "# Notes",
            "## Inbox",
            f"- [ ] [Buy milk](https://x/T1) <!-- {META} -->",
            "- [ ] plain task, not synced",
            '  - [x] [Nested](https://x/T2) <!-- {"id":"T2","source":"google-tasks","link":"https://x/T2","heading":"## Inbox"} -->',
        ]
    )

    items = read_items(text, SOURCE_GTASKS)
    assert [it.id for it in items] == ["T1", "T2"]
    assert items[0].title == "Buy milk"
    assert items[1].title == ""
    assert items[1].completed is True


def test_checkbox_wins_over_json_completed() -> None:
    meta = META.replace('"completed":false', '"completed":true')
    unchecked = parse_line(f"- [ ] [Buy milk](https://x/T1) <!-- {meta} -->")
    checked = parse_line(f"- [X] [Buy milk](https://x/T1) <!-- {META} -->")
    assert unchecked is not None and unchecked.completed is False
    assert checked is not None and checked.completed is True


def test_invalid_lines_are_skipped() -> None:
    lines = [
        "",
        "just text <!-- {\"id\":\"T9\"} -->",
        "- [ ] [No meta](https://x)",
        "- [ ] [Bad json](https://x) <!-- {not json} -->",
        '- [ ] [Missing link](https://x) <!-- {"id":"T3","source":"google-tasks","heading":"## Inbox"} -->',
        '- [ ] [Empty id](https://x) <!-- {"id":"","source":"google-tasks","link":"l","heading":"h"} -->',
        '- [ ] [Number id](https://x) <!-- {"id":5,"source":"google-tasks","link":"l","heading":"h"} -->',
        "-[ ] no space <!-- " + META + " -->",
    ]
    for line in lines:
        assert parse_line(line) is None
    assert read_items("\n".join(lines), SOURCE_GTASKS) == []


def test_filters_by_source_and_tolerates_empty_text() -> None:
    other = META.replace("google-tasks", "todoist")
    text = f"- [ ] a <!-- {META} -->\n- [ ] b <!-- {other} -->"
    assert [it.id for it in read_items(text, SOURCE_GTASKS)] == ["T1"]
    assert [it.source for it in read_items(text, "todoist")] == ["todoist"]
    assert read_items("", SOURCE_GTASKS) == []
