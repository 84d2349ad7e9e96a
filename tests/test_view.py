import pytest

from termi.errors import ClassifiedError, ErrorKind, general_error
from termi.state import Analyzing, Asking, Canceled, Copied, Failed, Init, Selecting
from termi.suggest import Suggestion
from termi.view import TEXT, render


@pytest.mark.parametrize("lang", sorted(TEXT))
def test_error_screens_differ_by_kind(lang):
    screens = {render(Failed(ClassifiedError(kind, "x")), lang=lang) for kind in ErrorKind}
    assert len(screens) == len(ErrorKind)


def test_selecting_marks_cursor_row():
    state = Selecting((Suggestion("ls", "OpenAI"), Suggestion("ls -la", "OpenAI")), 1)
    lines = render(state, lang="en").splitlines()
    row = next(line for line in lines if "ls -la" in line)
    assert row.startswith("➜ ")
    assert "[OpenAI]" in row
    other = next(line for line in lines if line.strip().startswith("ls ["))
    assert other.startswith("  ")


def test_asking_shows_history_prompt_and_buffer():
    state = Asking("write the output", "Which dir?", ("Which file? log.txt",), "/tm")
    screen = render(state, lang="en")
    assert "write the output" in screen
    assert "1. Which file? log.txt" in screen
    assert "Which dir?" in screen
    assert "> /tm█" in screen


def test_analyzing_shows_query_and_spins():
    a = render(Analyzing("list files"), frame=0)
    b = render(Analyzing("list files"), frame=1)
    assert "list files" in a
    assert a != b


def test_terminal_screens():
    assert "ls -la" in render(Copied("ls -la"), lang="en")
    assert "Canceled" in render(Canceled(), lang="en")
    assert "boom" in render(Failed(general_error("boom")), lang="en")
    assert render(Init(), lang="en")


def test_unknown_language_falls_back_to_chinese():
    assert render(Canceled(), lang="fr") == render(Canceled(), lang="zh")
