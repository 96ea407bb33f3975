"""Python code fragments embedded in the template tree."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, FrozenSet, Iterator

from macroview.compiler.nodes import HtmlNode, TemplateNode, TextNode

if TYPE_CHECKING:
    from macroview.compiler.nodes import Chunk

# Run at template set-up time, before the body.
HOIST = "h"
# Indent the lines that follow the statement.
INDENT = ">"
# Close the current block before the statement.
DEDENT = "<"


class CodeNode(TemplateNode):
    """A Python expression or statement.

    Expressions are output when the template is rendered, statements are
    executed for their side effect. The code itself is opaque: it is only
    ever concatenated, never analysed.
    """

    def __init__(self, code: str, statement: bool = False, flags: str = "") -> None:
        super().__init__()
        if not statement:
            code = code.strip().rstrip(";").rstrip()
        self._code = code
        self._statement = statement
        self._flags: FrozenSet[str] = frozenset(flags)

    @property
    def code(self) -> str:
        return self._code

    @property
    def statement(self) -> bool:
        return self._statement

    @property
    def flags(self) -> FrozenSet[str]:
        return self._flags

    def has_flag(self, flag: str) -> bool:
        return flag in self._flags

    @classmethod
    def export(cls, value: Any) -> CodeNode:
        """Create a literal expression from a Python value."""
        return cls(repr(value))

    @classmethod
    def expr(cls, node: TemplateNode) -> CodeNode:
        """Create an expression from any node."""
        if isinstance(node, CodeNode):
            if not node.statement:
                return node
            return cls.export(None)
        if isinstance(node, TextNode):
            return cls.export(node.text)
        return cls.export(str(node))

    @classmethod
    def attributes(cls, node: HtmlNode) -> CodeNode:
        """Create a dict expression from an element's attributes."""
        items = []
        for name, value in node.attributes.items():
            code = "None" if value is None else cls.expr(value).code
            items.append(f"{name!r}: {code}")
        return cls("{" + ", ".join(items) + "}")

    def chunks(self) -> Iterator[Chunk]:
        yield self

    def __str__(self) -> str:
        if self._statement:
            return "{% " + self._code.strip() + " %}"
        return "{{ " + self._code + " }}"

    def __repr__(self) -> str:
        kind = "statement" if self._statement else "expression"
        return f"CodeNode({self._code!r}, {kind}, flags={''.join(sorted(self._flags))!r})"
