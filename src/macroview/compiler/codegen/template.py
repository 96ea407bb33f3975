"""Template body code generation."""

import textwrap
from dataclasses import dataclass, field
from typing import List

from macroview.compiler.code import DEDENT, HOIST, INDENT, CodeNode
from macroview.compiler.exceptions import InvalidTemplateError
from macroview.compiler.nodes import TemplateNode

INDENT_UNIT = "    "


@dataclass
class RenderBody:
    """Lines of a render function, split into set-up and body."""

    setup: List[str] = field(default_factory=list)
    body: List[str] = field(default_factory=list)


class TemplateCodegen:
    """Turns a macro-processed tree into Python statements.

    Literal markup becomes ``write('...')``, expressions become
    ``write(<expr>)`` and statements are copied as lines, indented according
    to their block flags. Hoisted statements are collected separately so that
    they run before any output.
    """

    def __init__(self, write_name: str = "write") -> None:
        self.write_name = write_name
        self._reset_state(1)

    def _reset_state(self, level: int) -> None:
        self._result = RenderBody()
        self._text: List[str] = []
        # Number of lines emitted in each open block
        self._blocks: List[int] = [0]
        self._level = level

    def generate(self, root: TemplateNode, level: int = 1) -> RenderBody:
        """Generate the statements for ``root`` at indentation ``level``."""
        self._reset_state(level)
        for chunk in root.chunks():
            if isinstance(chunk, str):
                self._text.append(chunk)
            else:
                self._flush_text()
                self._add_code(chunk)
        self._flush_text()

        if len(self._blocks) != 1:
            raise InvalidTemplateError("Unbalanced code blocks in template")
        return self._result

    def _emit(self, code: str) -> None:
        prefix = INDENT_UNIT * (self._level + len(self._blocks) - 1)
        for line in textwrap.dedent(code).strip("\n").splitlines():
            self._result.body.append(prefix + line if line.strip() else "")
        self._blocks[-1] += 1

    def _flush_text(self) -> None:
        if self._text:
            self._emit(f"{self.write_name}({''.join(self._text)!r})")
            self._text = []

    def _add_code(self, chunk: CodeNode) -> None:
        if not chunk.statement:
            self._emit(f"{self.write_name}({chunk.code})")
            return

        if chunk.has_flag(HOIST):
            prefix = INDENT_UNIT * self._level
            for line in textwrap.dedent(chunk.code).strip("\n").splitlines():
                self._result.setup.append(prefix + line)
            return

        if chunk.has_flag(DEDENT):
            if len(self._blocks) == 1:
                raise InvalidTemplateError("Unbalanced code blocks in template")
            if self._blocks[-1] == 0:
                self._emit("pass")
            self._blocks.pop()
        if chunk.code.strip():
            self._emit(chunk.code)
        if chunk.has_flag(INDENT):
            self._blocks.append(0)
