"""Default template macros.

Every macro is a method ``<name>_macro(node, value)`` where ``node`` is the
element carrying the macro and ``value`` the macro parameter (a node, usually
a :class:`CodeNode` expression) or ``None`` when the parameter is omitted.
Generated code calls into the host view through the ``view`` name and writes
output through ``write``.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple, cast

from macroview.compiler.code import HOIST, CodeNode
from macroview.compiler.dispatcher import MacroHandler, MacroRegistry
from macroview.compiler.exceptions import InvalidTemplateError
from macroview.compiler.nodes import (
    AttributeValue,
    ForeachNode,
    FragmentNode,
    HtmlNode,
    IfNode,
    InternalNode,
    TemplateNode,
    TextNode,
)
from macroview.runtime.escape import escape_html

# Tags whose only purpose is to reference a stylesheet or script.
RESOURCE_TAGS = {"link", "script"}

# Tags pointing at their resource through ``src``.
SRC_TAGS = {"audio", "embed", "iframe", "img", "script", "source", "track", "video"}


def _code(value: AttributeValue) -> str:
    if value is None:
        return "None"
    return CodeNode.expr(value).code


def _root(node: TemplateNode) -> InternalNode:
    return cast(InternalNode, node.root)


def _escaped(value: TemplateNode) -> TemplateNode:
    if isinstance(value, CodeNode) and not value.statement:
        return CodeNode(f"escape_html({value.code})")
    return value


def _last_significant(branch: FragmentNode) -> Optional[TemplateNode]:
    node = branch.last_child
    while isinstance(node, TextNode) and node.is_whitespace:
        node = node.prev
    return node


def _innermost(if_node: IfNode) -> IfNode:
    """Follow an else-if chain down to the conditional that is still open."""
    while True:
        last = _last_significant(if_node.else_)
        if not isinstance(last, IfNode):
            return if_node
        if_node = last


def _find_preceding_if(node: TemplateNode) -> Tuple[Optional[IfNode], List[TemplateNode]]:
    """Scan backwards for the nearest conditional sibling.

    Returns the conditional (or ``None``) and the siblings in between, in
    document order.
    """
    between: List[TemplateNode] = []
    prev = node.prev
    while prev is not None:
        if isinstance(prev, IfNode):
            between.reverse()
            return prev, between
        between.append(prev)
        prev = prev.prev
    return None, []


def _move_into(branch: FragmentNode, nodes: List[TemplateNode]) -> None:
    for moved in nodes:
        branch.append(moved)


class DefaultMacros:
    """Implements the default template macros."""

    def handlers(self) -> Dict[str, Tuple[MacroHandler, int]]:
        """Macro name to handler and priority; lower priorities run first."""
        return {
            "ignore": (self.ignore_macro, 0),
            "main": (self.main_macro, 5),
            "extend": (self.extend_macro, 10),
            "layout": (self.layout_macro, 10),
            "nolayout": (self.nolayout_macro, 10),
            "import": (self.import_macro, 15),
            "imports": (self.imports_macro, 15),
            "else": (self.else_macro, 19),
            "if": (self.if_macro, 20),
            "foreach": (self.foreach_macro, 30),
            "assign": (self.assign_macro, 40),
            "append": (self.append_macro, 40),
            "prepend": (self.prepend_macro, 40),
            "class": (self.class_macro, 50),
            "datetime": (self.datetime_macro, 55),
            "href": (self.href_macro, 55),
            "src": (self.src_macro, 55),
            "file": (self.file_macro, 55),
            "tr": (self.tr_macro, 60),
            "tn": (self.tn_macro, 60),
            "outerhtml": (self.outerhtml_macro, 70),
            "innerhtml": (self.innerhtml_macro, 70),
            "outertext": (self.outertext_macro, 70),
            "innertext": (self.innertext_macro, 70),
            "html": (self.html_macro, 70),
            "text": (self.text_macro, 70),
            "embed": (self.embed_macro, 70),
            "block": (self.block_macro, 70),
        }

    def register(self, registry: MacroRegistry) -> MacroRegistry:
        """Register every default macro with its priority."""
        for name, (handler, priority) in self.handlers().items():
            registry.register(name, handler, priority)
        return registry

    # Content

    def outerhtml_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Replaces the node with the value, unescaped."""
        if value is None:
            node.detach()
            return
        node.replace_with(value)

    def innerhtml_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Replaces the content of the node with the value, unescaped."""
        node.clear()
        if value is not None:
            node.append(value)

    def outertext_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Replaces the node with the value, HTML escaped."""
        if value is None:
            node.detach()
            return
        node.replace_with(_escaped(value))

    def innertext_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Replaces the content of the node with the value, HTML escaped."""
        node.clear()
        if value is not None:
            node.append(_escaped(value))

    def html_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        self.innerhtml_macro(node, value)

    def text_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        self.innertext_macro(node, value)

    # Structure

    def main_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Marks the template root; selected by the compiler before the pass."""

    def import_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Imports a stylesheet or script. A resource tag is removed."""
        _root(node).prepend(
            CodeNode(f"view.import_resource({_code(value)})", True, HOIST)
        )
        if node.tag.lower() in RESOURCE_TAGS:
            node.detach()

    def imports_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Replaces a resource tag with the list of imported resources."""
        if value is not None:
            _root(node).prepend(
                CodeNode(f"view.import_resource({_code(value)})", True, HOIST)
            )
        if node.tag.lower() in RESOURCE_TAGS:
            node.replace_with(CodeNode("view.resource_block()"))

    def embed_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Replaces the node with another template."""
        node.replace_with(CodeNode(f"view.embed({_code(value)})"))

    def block_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Replaces the node with the content of a block."""
        node.replace_with(CodeNode(f"view.block({_code(value)})"))

    def _capture(self, node: HtmlNode, value: AttributeValue, mode: str) -> None:
        if mode == "replace":
            begin = f"view.begin({_code(value)})"
        else:
            begin = f"view.begin({_code(value)}, {mode!r})"
        node.before(CodeNode(begin, True))
        node.after(CodeNode("view.end()", True))

    def assign_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Assigns the node to a block."""
        self._capture(node, value, "replace")

    def append_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Appends the node to a block."""
        self._capture(node, value, "append")

    def prepend_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Prepends the node to a block."""
        self._capture(node, value, "prepend")

    def layout_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        node.before(CodeNode(f"view.layout({_code(value)})", True, HOIST))

    def nolayout_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        node.before(CodeNode("view.disable_layout()", True, HOIST))

    def extend_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Sets the parent template."""
        if value is None:
            raise InvalidTemplateError("The extend-macro requires a parent template.")
        node.before(CodeNode(f"view.extend({_code(value)})", True, HOIST))

    def ignore_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        node.detach()

    # Control flow

    def if_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Begins an if-block around the node, or continues the previous one."""
        if value is None:
            if_node, between = _find_preceding_if(node)
            if if_node is None:
                raise InvalidTemplateError("Empty if-node must follow another if-node.")
            if_node = _innermost(if_node)
            if len(if_node.else_):
                raise AssertionError("An if-continuation cannot follow an else-node.")
            _move_into(if_node.then, between)
            if_node.then.append(node)
            return
        if_node = IfNode(_code(value))
        node.replace_with(if_node)
        if_node.then.append(node)

    def else_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Begins or continues an else-block around the node."""
        if_node, between = _find_preceding_if(node)
        if if_node is None:
            raise InvalidTemplateError(
                "Else-node must follow an if-node or another else-node."
            )
        if_node = _innermost(if_node)
        _move_into(if_node.else_, between)
        if_node.else_.append(node)

    def foreach_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Begins a loop around the node, or continues the previous one."""
        if value is None:
            if isinstance(node.prev, ForeachNode):
                node.prev.append(node)
                return
            raise InvalidTemplateError(
                "Empty foreach-node must follow another foreach-node."
            )
        foreach_node = ForeachNode(_code(value))
        node.replace_with(foreach_node)
        foreach_node.append(node)

    # Attributes

    def datetime_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Sets the datetime-attribute from a timestamp."""
        node.set_attribute("datetime", CodeNode(f"view.iso_datetime({_code(value)})"))

    def href_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Points the href-attribute at a route and marks the current one."""
        route = _code(value)
        if not node.has_attribute("class"):
            node.set_attribute(
                "class",
                CodeNode(f"if view.is_current({route}): write('current')", True),
            )
        node.set_attribute("href", CodeNode(f"view.link({route})"))

    def src_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Points the src-attribute at a route."""
        node.set_attribute("src", CodeNode(f"view.link({_code(value)})"))

    def class_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Adds a class."""
        existing = node.get_attribute("class")
        if isinstance(existing, TextNode):
            literal = escape_html(existing.text) + " "
            code = f"{literal!r} + str({_code(value)})"
        elif isinstance(existing, CodeNode) and not existing.statement:
            code = f"str({existing.code}) + ' ' + str({_code(value)})"
        else:
            code = _code(value)
        node.set_attribute("class", CodeNode(code))

    def file_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Points the src- or href-attribute at an asset."""
        if node.has_attribute("src") or node.tag.lower() in SRC_TAGS:
            attribute = "src"
        else:
            attribute = "href"
        asset = value if value is not None else node.get_attribute(attribute)
        if asset is None:
            return
        node.set_attribute(attribute, CodeNode(f"view.file({_code(asset)})"))

    # Translation

    def _translation(self, node: HtmlNode) -> Tuple[str, List[str]]:
        key = ""
        params: List[str] = []
        for child in node.get_children():
            if isinstance(child, TextNode):
                key += child.text
                continue
            params.append(
                child.code
                if isinstance(child, CodeNode) and not child.statement
                else CodeNode.expr(child).code
            )
            key += f"%{len(params)}"
        return key.strip(), params

    def tr_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Translates the content of the node.

        Expressions in the content are replaced with numbered placeholders.
        """
        key, params = self._translation(node)
        args = ", ".join([repr(key)] + params)
        node.clear()
        node.append(CodeNode(f"view.tr({args})"))

    def tn_macro(self, node: HtmlNode, value: AttributeValue) -> None:
        """Translates the content of the node using plural forms.

        The content is the plural message; the parameter selects the form.
        """
        key, params = self._translation(node)
        args = ", ".join([repr(key), _code(value)] + params)
        node.clear()
        node.append(CodeNode(f"view.tn({args})"))


def default_registry() -> MacroRegistry:
    """Registry with every default macro."""
    return DefaultMacros().register(MacroRegistry())
