"""Interpolation of ``{{ expr }}`` and ``{! expr !}`` in template text.

Expression boundaries are found with the jinja2 lexer: a closing delimiter
inside a string literal or inside open brackets does not end the expression.
The expression text itself is kept verbatim as Python code.
"""

from typing import Dict, List, Tuple, Union

from jinja2 import Environment, TemplateSyntaxError
from jinja2.lexer import TOKEN_VARIABLE_END, Lexer

from macroview.compiler.code import CodeNode
from macroview.compiler.exceptions import InvalidTemplateError

ESCAPED_DELIMITERS = ("{{", "}}")
RAW_DELIMITERS = ("{!", "!}")

Part = Union[str, CodeNode]


class InterpolationParser:
    """Splits text into literal strings and expression nodes.

    ``{{ expr }}`` becomes ``escape_html(expr)``, ``{! expr !}`` is output
    unescaped.
    """

    def __init__(self) -> None:
        self._lexers: Dict[str, Tuple[Lexer, str, bool]] = {}
        for (start, end), escaped in ((ESCAPED_DELIMITERS, True), (RAW_DELIMITERS, False)):
            env = Environment(
                variable_start_string=start,
                variable_end_string=end,
                keep_trailing_newline=True,
            )
            self._lexers[start] = (env.lexer, end, escaped)

    def parse(self, text: str, line: int = 0) -> List[Part]:
        """Split ``text``; ``line`` is the line the text starts on (0 if unknown)."""
        if not any(start in text for start in self._lexers):
            return [text] if text else []
        parts: List[Part] = []
        pos = 0
        while True:
            start, opener = self._next_opener(text, pos)
            if start < 0:
                break
            lexer, closer, escaped = self._lexers[opener]
            at_line = line + text.count("\n", 0, start) if line else 0
            expr_start = start + len(opener)
            expr_end = self._expression_end(lexer, text, expr_start, at_line)
            expr = text[expr_start:expr_end].strip()
            if not expr:
                raise InvalidTemplateError("Empty interpolation", line=at_line or None)

            if start > pos:
                parts.append(text[pos:start])
            parts.append(CodeNode(f"escape_html({expr})") if escaped else CodeNode(expr))
            pos = expr_end + len(closer)

        if pos < len(text):
            parts.append(text[pos:])
        return parts

    def _next_opener(self, text: str, pos: int) -> Tuple[int, str]:
        found = (-1, "")
        for opener in self._lexers:
            index = text.find(opener, pos)
            if index >= 0 and (found[0] < 0 or index < found[0]):
                found = (index, opener)
        return found

    def _expression_end(self, lexer: Lexer, text: str, offset: int, line: int) -> int:
        # The lexer normalizes newlines; offsets into ``text`` must stay valid
        source = text[offset:].replace("\r", " ")
        consumed = 0
        try:
            for _, token, value in lexer.tokeniter(source, None, state="variable"):
                if token == TOKEN_VARIABLE_END:
                    # "-}}" is jinja's whitespace control; the "-" is expression text
                    if value.startswith("-"):
                        consumed += 1
                    return offset + consumed
                consumed += len(value)
        except TemplateSyntaxError as e:
            raise InvalidTemplateError(
                f"Invalid interpolation: {e.message}", line=line or None
            ) from e
        raise InvalidTemplateError("Unterminated interpolation", line=line or None)
