"""HTML template parser.

Builds the node tree consumed by the macro pass. Attributes starting with the
macro prefix (``m:`` by default) are stored as macros whose values are Python
expressions. Text and regular attribute values support interpolation:

* ``{{ expr }}`` outputs the HTML escaped value of ``expr``
* ``{! expr !}`` outputs the value unescaped
"""

from html.parser import HTMLParser
from pathlib import Path
from typing import List, Optional, Tuple

from macroview.compiler.code import CodeNode
from macroview.compiler.exceptions import InvalidTemplateError
from macroview.compiler.interpolation import InterpolationParser
from macroview.compiler.nodes import (
    AttributeValue,
    FragmentNode,
    HtmlNode,
    InternalNode,
    TextNode,
)
from macroview.runtime.escape import escape_html

DEFAULT_MACRO_PREFIX = "m:"

# Elements whose content is not interpolated
RAW_TEXT_ELEMENTS = {"script", "style"}


class _TreeBuilder(HTMLParser):
    def __init__(self, parser: "TemplateParser") -> None:
        super().__init__(convert_charrefs=False)
        self.parser = parser
        self.root = FragmentNode()
        self.stack: List[InternalNode] = [self.root]
        self._text: List[str] = []
        self._text_line = 1

    @property
    def current(self) -> InternalNode:
        return self.stack[-1]

    def _in_raw_text(self) -> bool:
        current = self.current
        return isinstance(current, HtmlNode) and current.tag in RAW_TEXT_ELEMENTS

    def _add_text(self, text: str) -> None:
        if not self._text:
            self._text_line = self.getpos()[0]
        self._text.append(text)

    def flush_text(self) -> None:
        if not self._text:
            return
        text = "".join(self._text)
        self._text = []
        if self._in_raw_text():
            self.current.append(TextNode(text))
            return
        for part in self.parser.interpolation_parser.parse(text, self._text_line):
            self.current.append(TextNode(part) if isinstance(part, str) else part)

    def _element(
        self, tag: str, attrs: List[Tuple[str, Optional[str]]]
    ) -> HtmlNode:
        line = self.getpos()[0]
        node = HtmlNode(tag, line=line)
        prefix = self.parser.macro_prefix
        for name, value in attrs:
            if name.startswith(prefix):
                macro = name[len(prefix) :]
                node.macros[macro] = (
                    None if value is None or not value.strip() else CodeNode(value)
                )
            else:
                node.attributes[name] = self.parser.parse_attribute_value(value, line)
        return node

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        self.flush_text()
        node = self._element(tag, attrs)
        self.current.append(node)
        if not node.is_void:
            self.stack.append(node)

    def handle_startendtag(
        self, tag: str, attrs: List[Tuple[str, Optional[str]]]
    ) -> None:
        self.flush_text()
        self.current.append(self._element(tag, attrs))

    def handle_endtag(self, tag: str) -> None:
        self.flush_text()
        if tag in HtmlNode.VOID_ELEMENTS:
            return
        for i in range(len(self.stack) - 1, 0, -1):
            node = self.stack[i]
            if isinstance(node, HtmlNode) and node.tag == tag:
                # Implicitly close everything opened after the match
                del self.stack[i:]
                return
        raise InvalidTemplateError(
            f"Unexpected closing tag </{tag}>", line=self.getpos()[0]
        )

    def handle_data(self, data: str) -> None:
        self._add_text(data)

    def handle_entityref(self, name: str) -> None:
        self._add_text(f"&{name};")

    def handle_charref(self, name: str) -> None:
        self._add_text(f"&#{name};")

    def _add_literal(self, markup: str) -> None:
        # Comments and declarations are output as written, never interpolated
        self.flush_text()
        self.current.append(TextNode(markup))

    def handle_comment(self, data: str) -> None:
        self._add_literal(f"<!--{data}-->")

    def handle_decl(self, decl: str) -> None:
        self._add_literal(f"<!{decl}>")

    def handle_pi(self, data: str) -> None:
        self._add_literal(f"<?{data}>")

    def unknown_decl(self, data: str) -> None:
        self._add_literal(f"<![{data}]>")

    def finish(self) -> FragmentNode:
        self.close()
        self.flush_text()
        return self.root


class TemplateParser:
    """Parses HTML templates into a node tree."""

    def __init__(self, macro_prefix: str = DEFAULT_MACRO_PREFIX) -> None:
        self.macro_prefix = macro_prefix.lower()

        # Interpolation parser (pluggable)
        self.interpolation_parser = InterpolationParser()

    def parse_file(self, file_path: Path) -> FragmentNode:
        """Parse a template file."""
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                content = f.read()
        except UnicodeDecodeError as e:
            raise InvalidTemplateError(
                f"Template is not valid UTF-8: {e.reason} at byte {e.start}",
                file_path=str(file_path),
            ) from e

        return self.parse(content, str(file_path))

    def parse(self, content: str, file_path: str = "") -> FragmentNode:
        """Parse template source into a tree rooted at a fragment node."""
        builder = _TreeBuilder(self)
        try:
            builder.feed(content)
            return builder.finish()
        except InvalidTemplateError as e:
            raise e.with_location(file_path or None) from e

    def parse_attribute_value(
        self, value: Optional[str], line: int = 0
    ) -> AttributeValue:
        """Turn a decoded attribute value into a literal or an expression."""
        if value is None:
            return None
        parts = self.interpolation_parser.parse(value, line)
        if not any(isinstance(part, CodeNode) for part in parts):
            return TextNode(value)
        if len(parts) == 1:
            return parts[0]
        pieces = []
        for part in parts:
            if isinstance(part, CodeNode):
                pieces.append(f"str({part.code})")
            else:
                pieces.append(repr(escape_html(part)))
        return CodeNode(" + ".join(pieces))

