# tests/test_line_editor.py

from __future__ import annotations

from taskdeck.client.editor import CLEAR_LINE, LineEditor
from taskdeck.client.keys import Key, KeyDecoder

from .fakes import RecordingDisplay


def _type(editor: LineEditor, text: str) -> None:
    for ch in text:
        editor.handle_key(ch)


def _editor() -> tuple[LineEditor, RecordingDisplay]:
    display = RecordingDisplay()
    return LineEditor(display, prompt="tasksh> "), display


def test_every_keystroke_redraws_the_whole_line() -> None:
    editor, display = _editor()
    _type(editor, "ls")
    editor.handle_key(Key.BACKSPACE)

    assert display.writes == [
        CLEAR_LINE + "tasksh> l",
        CLEAR_LINE + "tasksh> ls",
        CLEAR_LINE + "tasksh> l",
    ]


def test_backspace_on_empty_buffer_is_a_no_op() -> None:
    editor, display = _editor()
    assert editor.handle_key(Key.BACKSPACE) is None
    assert editor.buffer == ""
    assert display.writes == []


def test_enter_returns_command_but_keeps_buffer_until_accepted() -> None:
    editor, _ = _editor()
    _type(editor, "  list +home ")

    assert editor.handle_key(Key.ENTER) == "list +home"
    assert editor.buffer == "  list +home "
    assert editor.history == ["list +home"]

    editor.accept("list +home")
    assert editor.buffer == ""


def test_accept_leaves_a_newer_buffer_alone() -> None:
    editor, _ = _editor()
    _type(editor, "next")
    editor.handle_key(Key.ENTER)
    editor.buffer = "something else"

    editor.accept("next")
    assert editor.buffer == "something else"


def test_parked_command_frees_the_input_line() -> None:
    editor, display = _editor()
    _type(editor, "list")
    editor.park(editor.handle_key(Key.ENTER))

    assert editor.buffer == ""
    assert "Queued until reconnect: list" in display.text
    _type(editor, "next")
    assert editor.buffer == "next"
    assert editor.history == ["list"]


def test_empty_enter_is_not_recorded() -> None:
    editor, _ = _editor()
    _type(editor, "   ")
    assert editor.handle_key(Key.ENTER) is None
    assert editor.history == []
    assert editor.buffer == ""


def test_history_navigation_does_not_mutate_history() -> None:
    editor, _ = _editor()
    for command in ("list", "next", "projects"):
        _type(editor, command)
        editor.handle_key(Key.ENTER)
        editor.accept(command)

    _type(editor, "dra")
    editor.handle_key(Key.UP)
    assert editor.buffer == "projects"
    editor.handle_key(Key.UP)
    editor.handle_key(Key.UP)
    editor.handle_key(Key.UP)
    assert editor.buffer == "list"
    assert editor.history_index == 2

    editor.handle_key(Key.DOWN)
    assert editor.buffer == "next"
    editor.handle_key(Key.DOWN)
    editor.handle_key(Key.DOWN)
    assert editor.buffer == "dra"
    assert editor.history_index == -1
    assert editor.history == ["list", "next", "projects"]


def test_history_is_not_capped() -> None:
    editor, _ = _editor()
    for i in range(500):
        _type(editor, f"info {i}")
        editor.handle_key(Key.ENTER)
        editor.accept(f"info {i}")
    assert len(editor.history) == 500


def test_prefill_shows_a_suggestion_without_sending() -> None:
    editor, display = _editor()
    editor.prefill("list +work")
    assert editor.buffer == "list +work"
    assert display.writes[-1] == CLEAR_LINE + "tasksh> list +work"


def test_output_drops_echoed_prompt_and_redraws_input() -> None:
    editor, display = _editor()
    _type(editor, "ne")
    editor.show_output("tasksh> list\nNo matches.\n")

    assert display.writes[-2] == CLEAR_LINE + "list\r\nNo matches.\r\n"
    assert display.writes[-1] == CLEAR_LINE + "tasksh> ne"


def test_decoder_handles_split_escape_sequences() -> None:
    decoder = KeyDecoder()
    assert decoder.feed("ab\x1b") == ["a", "b"]
    assert decoder.feed("[") == []
    assert decoder.feed("A\x1bOB") == [Key.UP, Key.DOWN]


def test_decoder_control_keys() -> None:
    decoder = KeyDecoder()
    assert decoder.feed("x\r\n\x7f\t\x03\x04") == ["x", Key.ENTER, Key.BACKSPACE, Key.TAB, Key.INTERRUPT, Key.EOF]
    assert decoder.feed("\x1b[C") == []


def test_decoder_joins_utf8_split_across_reads() -> None:
    decoder = KeyDecoder()
    raw = "día ✓".encode()
    assert decoder.feed_bytes(raw[:2]) == ["d"]
    assert decoder.feed_bytes(raw[2:6]) == ["í", "a", " "]
    assert decoder.feed_bytes(raw[6:]) == ["✓"]
