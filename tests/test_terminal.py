"""Tests for the raw-mode line editor, fed through a pipe."""

import io
import os
import sys
from pathlib import Path

import pytest  # type: ignore

# Add src directory to path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from completion import CompletionSet
from terminal import LineBuffer, LineEditor, RawMode

BACKSPACE = b"\x7f"
LEFT = b"\x1b[D"
RIGHT = b"\x1b[C"
HOME = b"\x1b[H"
END = b"\x1b[F"
DELETE = b"\x1b[3~"
TAB = b"\t"
PROMPT = "p> "


def feed(keys: bytes, completer=None, env=None):
    """Run one read_line over `keys`; returns (line, rendered output)."""
    r, w = os.pipe()
    os.write(w, keys)
    os.close(w)
    out = io.StringIO()
    kwargs = {"fd": r, "out": out, "env": env}
    if completer is not None:
        kwargs["completer"] = completer
    try:
        line = LineEditor(**kwargs).read_line(PROMPT)
    finally:
        os.close(r)
    return line, out.getvalue()


class TestLineBuffer:

    def test_insert_and_delete(self):
        buf = LineBuffer()
        buf.insert("abc")
        assert str(buf) == "abc" and buf.cursor == 3
        assert buf.delete_before()
        assert str(buf) == "ab" and buf.cursor == 2

    def test_bounds(self):
        buf = LineBuffer()
        assert not buf.delete_before()
        assert not buf.delete_at()
        assert buf.move(-5) == 0
        buf.insert("xy")
        assert buf.move(10) == 0
        assert buf.move(-10) == -2
        assert buf.cursor == 0
        assert buf.delete_at()
        assert str(buf) == "y"

    def test_tail(self):
        buf = LineBuffer()
        buf.insert("hello")
        buf.move(-2)
        assert buf.tail() == "lo"


class TestTyping:

    def test_backspace_scenario(self):
        line, out = feed(b"ls" + BACKSPACE + b"l\n")
        assert line == "ll"
        assert out == "p> ls\x1b[1D\x1b[Kl\n"

    def test_carriage_return_ends_line(self):
        line, _ = feed(b"echo hi\r")
        assert line == "echo hi"

    def test_insert_in_middle(self):
        line, out = feed(b"ac" + LEFT + b"b\n")
        assert line == "abc"
        assert "b" + "c" + "\x1b[1D" in out

    def test_arrows_clamp(self):
        line, _ = feed(LEFT + LEFT + b"x" + RIGHT + RIGHT + b"y\n")
        assert line == "xy"

    def test_backspace_in_middle(self):
        line, _ = feed(b"abcd" + LEFT + LEFT + BACKSPACE + b"\n")
        assert line == "acd"

    def test_backspace_at_start_does_nothing(self):
        line, out = feed(BACKSPACE + b"a\n")
        assert line == "a"
        assert out == "p> a\n"

    def test_delete_key(self):
        line, _ = feed(b"abc" + HOME + DELETE + b"\n")
        assert line == "bc"

    def test_home_end(self):
        line, _ = feed(b"bc" + HOME + b"a" + END + b"d\n")
        assert line == "abcd"

    def test_ctrl_a_ctrl_e(self):
        line, _ = feed(b"bc\x01a\x05d\n")
        assert line == "abcd"

    def test_unknown_escape_ignored(self):
        line, _ = feed(b"a\x1b[Zb\x1bOc\n")
        assert line == "abc"

    def test_utf8(self):
        line, _ = feed("héllo\n".encode("utf-8"))
        assert line == "héllo"

    def test_control_characters_ignored(self):
        line, _ = feed(b"a\x07b\n")
        assert line == "ab"


class TestEndOfInput:

    def test_eof_without_input(self):
        line, out = feed(b"")
        assert line is None
        assert out == PROMPT

    def test_ctrl_d_on_empty_line(self):
        line, _ = feed(b"\x04")
        assert line is None

    def test_ctrl_d_with_text_is_ignored(self):
        line, _ = feed(b"ab\x04\n")
        assert line == "ab"

    def test_eof_after_text(self):
        line, _ = feed(b"partial")
        assert line == "partial"

    def test_eof_after_erasing_everything(self):
        line, _ = feed(b"a" + BACKSPACE)
        assert line == ""


def stub_completer(candidates, prefix):
    calls = []

    def completer(buffer, cursor, env):
        calls.append((buffer, cursor))
        return CompletionSet(list(candidates), prefix, "command")

    completer.calls = calls
    return completer


class TestTabCompletion:

    def test_unique_candidate_spliced(self):
        completer = stub_completer(["status"], "st")
        line, _ = feed(b"git st" + TAB + b"\n", completer)
        assert line == "git status"
        assert completer.calls == [("git st", 6)]

    def test_unique_candidate_at_cursor(self):
        completer = stub_completer(["status"], "st")
        line, _ = feed(b"st -v" + LEFT + LEFT + LEFT + TAB + b"\n", completer)
        assert line == "status -v"

    def test_multiple_candidates_listed(self, monkeypatch):
        monkeypatch.setenv("COLUMNS", "80")
        completer = stub_completer(["alpha", "beta"], "")
        line, out = feed(b"cmd " + TAB + b"\n", completer)
        assert line == "cmd "
        assert "\nalpha  beta\n" + PROMPT + "cmd " in out

    def test_no_candidates(self):
        completer = stub_completer([], "zzzzz")
        line, out = feed(b"zzzzz" + TAB + b"\n", completer)
        assert line == "zzzzz"
        assert out == "p> zzzzz\n"

    def test_real_path_completion(self, tmp_path):
        (tmp_path / "only.txt").write_text("")
        typed = f"cat {tmp_path}/".encode()
        line, _ = feed(typed + TAB + b"\n")
        assert line == f"cat {tmp_path}/only.txt"

    def test_cursor_after_spliced_entry(self, tmp_path):
        (tmp_path / "only.txt").write_text("")
        typed = f"cat {tmp_path}/".encode()
        line, _ = feed(typed + TAB + b"X\n")
        assert line == f"cat {tmp_path}/only.txtX"

    def test_real_command_no_match(self, tmp_path):
        line, _ = feed(b"zzzzz" + TAB + b"\n", env={"PATH": str(tmp_path)})
        assert line == "zzzzz"


class TestRawMode:

    def test_noop_on_pipe(self):
        r, w = os.pipe()
        try:
            with RawMode(r) as mode:
                assert mode._saved is None
        finally:
            os.close(r)
            os.close(w)

    def test_restored_on_terminal(self):
        termios = pytest.importorskip("termios")
        pty = pytest.importorskip("pty")
        master, slave = pty.openpty()
        try:
            before = termios.tcgetattr(slave)
            with RawMode(slave):
                during = termios.tcgetattr(slave)
                assert not during[3] & termios.ECHO
                assert not during[3] & termios.ICANON
                assert during[3] & termios.ISIG
            assert termios.tcgetattr(slave) == before
        finally:
            os.close(master)
            os.close(slave)

    def test_restored_after_exception(self):
        termios = pytest.importorskip("termios")
        pty = pytest.importorskip("pty")
        master, slave = pty.openpty()
        try:
            before = termios.tcgetattr(slave)
            with pytest.raises(KeyboardInterrupt):
                with RawMode(slave):
                    raise KeyboardInterrupt
            assert termios.tcgetattr(slave) == before
        finally:
            os.close(master)
            os.close(slave)

    def test_type_ahead_kept(self, monkeypatch):
        termios = pytest.importorskip("termios")
        pty = pytest.importorskip("pty")
        master, slave = pty.openpty()
        real_tcsetattr = termios.tcsetattr
        whens = []

        def recording(fd, when, attrs):
            whens.append(when)
            real_tcsetattr(fd, when, attrs)

        monkeypatch.setattr(termios, "tcsetattr", recording)
        try:
            with RawMode(slave):
                pass
            assert whens == [termios.TCSADRAIN, termios.TCSADRAIN]
        finally:
            os.close(master)
            os.close(slave)
