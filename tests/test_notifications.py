# TaskMirror test scripts
from __future__ import annotations

from conftest import make_item
from services.notifications import NotificationCenter


def test_ring_buffer_keeps_latest() -> None:
    nc = NotificationCenter(maxlen=2)
    nc.push("one")
    nc("two")
    nc.push("three", "error")
    rows = nc.list()
    assert [r["message"] for r in rows] == ["two", "three"]
    assert rows[-1]["level"] == "ERROR"
    assert nc.clear() == 2
    assert nc.list() == []


def test_resolve_answers_the_question() -> None:
    nc = NotificationCenter(confirm_timeout=0)
    fut = nc.ask(make_item("A", "Buy milk"))

    assert [p["id"] for p in nc.pending()] == ["A"]
    assert "Buy milk" in nc.list()[-1]["message"]
    assert nc.resolve("A", True) is True
    assert fut.result(timeout=1) is True
    assert nc.pending() == []
    assert nc.resolve("A", False) is False


def test_unanswered_question_resolves_to_keep() -> None:
    nc = NotificationCenter(confirm_timeout=0.05)
    fut = nc.ask(make_item("A"))
    assert fut.result(timeout=5) is False
    assert nc.pending() == []


def test_asking_again_replaces_old_question() -> None:
    nc = NotificationCenter(confirm_timeout=0)
    first = nc.ask(make_item("A"))
    second = nc.ask(make_item("A"))

    assert first.result(timeout=1) is False
    assert not second.done()
    nc.resolve("A", True)
    assert second.result(timeout=1) is True
