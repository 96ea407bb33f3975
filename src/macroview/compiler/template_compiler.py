"""Template compiler: parse, apply macros, generate Python."""

import logging
from pathlib import Path
from typing import Optional, Union

from macroview.compiler.code import HOIST, CodeNode
from macroview.compiler.codegen.generator import CodeGenerator
from macroview.compiler.dispatcher import MacroDispatcher, MacroRegistry
from macroview.compiler.exceptions import InvalidTemplateError
from macroview.compiler.macros import default_registry
from macroview.compiler.nodes import FragmentNode, HtmlNode, InternalNode
from macroview.compiler.parser import DEFAULT_MACRO_PREFIX, TemplateParser

logger = logging.getLogger(__name__)


def find_main(root: InternalNode) -> Optional[HtmlNode]:
    """First element, in document order, carrying the ``main`` macro."""
    stack = list(reversed(root.get_children()))
    while stack:
        node = stack.pop()
        if isinstance(node, HtmlNode):
            if node.has_macro("main"):
                return node
            stack.extend(reversed(node.get_children()))
    return None


class TemplateCompiler:
    """Compiles HTML templates into Python view modules."""

    def __init__(
        self,
        registry: Optional[MacroRegistry] = None,
        macro_prefix: str = DEFAULT_MACRO_PREFIX,
    ) -> None:
        self.registry = registry if registry is not None else default_registry()
        self.parser = TemplateParser(macro_prefix)
        self.dispatcher = MacroDispatcher(self.registry)
        self.generator = CodeGenerator()

    def compile(self, template_path: Union[str, Path]) -> str:
        """Compile a template file and return the generated module source."""
        path = Path(template_path)
        logger.debug("Parsing template %s", path)
        root = self.parser.parse_file(path)
        return self.compile_tree(root, str(path))

    def compile_string(self, source: str, name: str = "") -> str:
        """Compile template source text."""
        root = self.parser.parse(source, name)
        return self.compile_tree(root, name)

    def transform(self, root: FragmentNode, name: str = "") -> FragmentNode:
        """Select the main element and apply the macro pass in place.

        Returns the root that should be serialized. When a main element is
        selected, hoisted statements produced by macros outside it (layout,
        extend, import, ...) are kept in front of it.
        """
        main = find_main(root)
        try:
            if main is not None:
                logger.debug(
                    "Using <%s> as main element of %s", main.tag, name or "template"
                )
                main.detach()
                self.dispatcher.apply(root)
                hoisted = [
                    chunk
                    for chunk in list(root.chunks())
                    if isinstance(chunk, CodeNode) and chunk.has_flag(HOIST)
                ]
                root = FragmentNode()
                for code in hoisted:
                    root.append(code)
                root.append(main)
            self.dispatcher.apply(root)
        except InvalidTemplateError as e:
            raise e.with_location(name or None) from e
        return root

    def compile_tree(self, root: FragmentNode, name: str = "") -> str:
        """Apply macros to a parsed tree and generate the module source."""
        root = self.transform(root, name)
        source = self.generator.generate(root, name or None)
        try:
            compile(source, name or "<template>", "exec")
        except SyntaxError as e:
            raise InvalidTemplateError(
                f"Generated code is not valid Python: {e.msg} (line {e.lineno})",
                file_path=name or None,
            ) from e
        return source
