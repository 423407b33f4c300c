"""Tests for the Rich Console factory."""

from io import StringIO

from soltrctl.output.console import SOLTR_THEME, create_console, get_output, write_raw


class TestCreateConsole:
    def test_returns_console_with_stringio(self) -> None:
        assert isinstance(create_console().file, StringIO)

    def test_no_color_disables_ansi(self) -> None:
        console = create_console(no_color=True)
        console.print("[soltr.error]hello[/soltr.error]")
        output = get_output(console)
        assert "\x1b" not in output
        assert "hello" in output

    def test_custom_width(self) -> None:
        assert create_console(width=80).width == 80

    def test_theme_styles(self) -> None:
        for name in ("soltr.ok", "soltr.error", "soltr.warning", "soltr.hint"):
            assert name in SOLTR_THEME.styles


class TestWriteRaw:
    def test_passes_markup_through(self) -> None:
        console = create_console()
        write_raw(console, "[bold]firefox[/bold] 131.0")
        assert get_output(console) == "[bold]firefox[/bold] 131.0\n"

    def test_does_not_wrap(self) -> None:
        console = create_console(width=20)
        line = "x" * 60
        write_raw(console, line + "\n")
        assert get_output(console) == line + "\n"

    def test_empty_writes_nothing(self) -> None:
        console = create_console()
        write_raw(console, "")
        assert get_output(console) == ""
