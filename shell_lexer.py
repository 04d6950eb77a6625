# ============================================================================
# SHELL LEXER
# ============================================================================

from __future__ import annotations

import re

from pygments.lexer import RegexLexer, bygroups, include
from pygments.token import (
    Comment,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Token,
    _TokenType,
)
from rich.style import Style
from rich.text import Text as RichText

# Define custom token types so Rich and Pygments know about them
Name.Argument = Token.Name.Argument
Name.Variable.Magic = Token.Name.Variable.Magic
Keyword.Type = Token.Keyword.Type


class ShellLexer(RegexLexer):
    """
    A single-line bash/zsh lexer tuned for history entries.
    Use like so:
    ```python
    text = colorize_command("git commit -m \"$(date)\"")
    ```
    """

    name = "Shell history"
    aliases = ["histsh"]
    filenames = [".bash_history", ".zsh_history"]

    flags = re.MULTILINE

    tokens = {
        "_base": [
            (r"\\.", String.Escape),
            # Arithmetic before command substitution, `$((` would otherwise open `$(`
            (r"\$\(\(", Operator, "arithmetic_expansion"),
            (r"\$\(", String.Interpol, "command_substitution"),
            (r"`", String.Backtick, "backtick"),
            (r"\$\{", Name.Variable.Magic, "parameter_expansion"),
            (r"\$[a-zA-Z0-9_@*#?$!~-]+", Name.Variable),
            (r"\$'(\\.|[^'])*'", String.Single),
            (r"'[^']*'?", String.Single),
            (r'"', String.Double, "string_double"),
        ],
        "root": [
            (r"\s+", Text),
            (r"#.*$", Comment.Single),
            # History expansion: !!, !$, !-2, !git
            (r"![!$^*]|!-?\d+|!\w+", Keyword.Pseudo),
            (r"(<<<|<<-?|>>?|<&|>&|&>)", Operator),
            (r"\|\|?|&&|&", Operator),
            (r"[;()\[\]{}]", Punctuation),
            (r"\b(if|fi|else|elif|then|for|in|while|until|do|done|case|esac|function|select|time)\b",
             Keyword.Reserved),
            (r"\b(sudo|env|nohup|exec|command|builtin|xargs)\b", Keyword.Type),
            (r"\b(echo|printf|cd|pwd|export|unset|readonly|source|alias|exit|return|eval)\b",
             Name.Builtin, "cmdtail"),
            (r"([a-zA-Z_][a-zA-Z0-9_]*)(=)", bygroups(Name.Variable, Operator)),
            (r"\b[0-9]+\b", Number.Integer),
            include("_base"),
            (r"[^\s;&|(){}<>\[\]$`'\"\\]+", Name.Function, "cmdtail"),
        ],
        "cmdtail": [
            (r"$", Text, "#pop"),
            (r"\|\|?|&&", Operator, "#pop"),
            (r"[;&]", Punctuation, "#pop"),
            # Leave the closing paren to an enclosing $( ... )
            (r"(?=\))", Text, "#pop"),
            (r"\s+", Text),
            (r"#.*$", Comment.Single),
            (r"(>>?|<<?<?|&>|[0-9]>&?[0-9]?)", Operator),
            (r"(?:--?|\+)[a-zA-Z0-9][\w-]*", Name.Attribute),
            (r"=", Operator),
            (r"\b[0-9]+\b", Number.Integer),
            include("_base"),
            (r"[^=\s;&|(){}<>\[\]$`'\"\\]+", Name.Argument),
            (r"[()\[\]{}]", Punctuation),
        ],
        "string_double": [
            (r'"', String.Double, "#pop"),
            (r'\\(["$`\\])', String.Escape),
            (r"\$\(", String.Interpol, "command_substitution"),
            (r"\$\{", Name.Variable.Magic, "parameter_expansion"),
            (r"\$[a-zA-Z0-9_@*#?$!~-]+", Name.Variable),
            (r'[^"\\$]+', String.Double),
            (r"[\\$]", String.Double),
        ],
        "backtick": [
            (r"`", String.Backtick, "#pop"),
            (r"[^`]+", String.Backtick),
        ],
        "command_substitution": [
            (r"\)", String.Interpol, "#pop"),
            include("root"),
        ],
        "arithmetic_expansion": [
            (r"\)\)", Operator, "#pop"),
            (r"[-+*/%&|<>!=^]+", Operator.Word),
            (r"\b[0-9]+\b", Number.Integer),
            (r"[a-zA-Z_][a-zA-Z0-9_]*", Name.Variable),
            (r"\s+", Text),
        ],
        "parameter_expansion": [
            (r"\}", Name.Variable.Magic, "#pop"),
            (r"\$\{", Name.Variable.Magic, "#push"),
            (r"\$\(", String.Interpol, "command_substitution"),
            # zsh flags like ${(f)var}
            (
                r"(\([#@=a-zA-Z:?^]+\))([a-zA-Z_][a-zA-Z0-9_]*)",
                bygroups(Keyword.Type, Name.Variable),
            ),
            (r"[a-zA-Z_][a-zA-Z0-9_]*", Name.Variable),
            (r"[#%/:|~^]+", Operator),
            (r"[^}$]+", Text),
            (r"\$", Text),
        ],
    }


class HistoryRowTheme:
    """Token styles for result rows, a muted Monokai Pro on the terminal's own background."""

    _RED = "#ff6188"
    _GREEN = "#a9dc76"
    _YELLOW = "#ffd866"
    _ORANGE = "#fc9867"
    _PURPLE = "#ab9df2"
    _CYAN = "#78dce8"
    _COMMENT_GRAY = "#727072"

    default_style = Style()

    styles = {
        Name.Function: Style(color=_GREEN, bold=True),  # git, curl
        Name.Attribute: Style(color=_ORANGE),  # --long, -l
        Name.Argument: Style(),  # a filename
        Name.Variable.Magic: Style(color=_PURPLE),  # ${PATH}
        Name.Variable: Style(color=_PURPLE),
        Name.Builtin: Style(color=_CYAN, italic=True),
        Keyword.Type: Style(color=_CYAN, italic=True),  # sudo, env
        Keyword.Pseudo: Style(color=_ORANGE, bold=True),  # !!
        Keyword: Style(color=_RED, bold=True),
        Number: Style(color=_CYAN),
        Comment: Style(color=_COMMENT_GRAY, italic=True),
        Operator: Style(color=_RED),
        String.Escape: Style(color=_PURPLE),
        String.Interpol: Style(color=_PURPLE, bold=True),
        String: Style(color=_YELLOW),
    }

    @classmethod
    def get_style_for_token(cls, t: _TokenType) -> Style:
        # Walk up the token hierarchy, e.g. String.Double -> String
        while t is not None:
            if t in cls.styles:
                return cls.styles[t]
            t = t.parent
        return cls.default_style


_LEXER = ShellLexer(stripnl=False, ensurenl=False)


def colorize_command(command: str) -> RichText:
    """→ Rich Text for one history entry, coloured token by token"""
    text = RichText(no_wrap=True, overflow="ellipsis")
    for token_type, value in _LEXER.get_tokens(command):
        text.append(value, style=HistoryRowTheme.get_style_for_token(token_type))
    return text
