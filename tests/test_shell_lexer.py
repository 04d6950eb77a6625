from pygments.token import Name, String, Token

from shell_lexer import HistoryRowTheme, colorize_command


class TestColorizeCommand:
    def test_plain_text_preserved(self):
        for command in [
            "git commit -m \"fix $(date +%F)\"",
            "echo ${(f)PATH} | tr : '\\n'",
            "sudo !!",
            "echo $",
            "ls (",
            "x=$((1 + 2)) && echo `whoami` # note",
        ]:
            assert colorize_command(command).plain == command

    def test_command_name_is_styled(self):
        text = colorize_command("git status")
        styles = {text.plain[span.start:span.end]: span.style for span in text.spans}
        assert styles["git"] == HistoryRowTheme.styles[Name.Function]

    def test_no_trailing_newline_added(self):
        assert not colorize_command("ls").plain.endswith("\n")


class TestHistoryRowTheme:
    def test_subtoken_falls_back_to_parent(self):
        assert HistoryRowTheme.get_style_for_token(String.Double) == HistoryRowTheme.styles[String]

    def test_unknown_token_uses_default(self):
        assert HistoryRowTheme.get_style_for_token(Token.Generic.Heading) == HistoryRowTheme.default_style
