import pytest

from termi.suggest import Suggestion, add, clamp, merge


def test_add_twice_keeps_one():
    s = Suggestion("ls -la", "llm")
    out = add(add((), s), Suggestion("ls -la", "llm"))
    assert out == (s,)


def test_dedup_ignores_source():
    first = Suggestion("ls -la", "history")
    out = add((first,), Suggestion("ls -la", "OpenAI"))
    assert len(out) == 1
    assert out[0].source == "history"


def test_merge_preserves_insertion_order():
    local = (Suggestion("ls", "local"), Suggestion("ls -a", "local"))
    out = merge(local, [Suggestion("ls -la", "llm"), Suggestion("ls", "llm")])
    assert [s.text for s in out] == ["ls", "ls -a", "ls -la"]


def test_empty_text_rejected():
    with pytest.raises(ValueError):
        Suggestion("   ", "llm")


def test_clamp_bounds():
    assert clamp(-1, 3) == 0
    assert clamp(5, 3) == 2
    assert clamp(1, 3) == 1
    assert clamp(4, 0) == 0
