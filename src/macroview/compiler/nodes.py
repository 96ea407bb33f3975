"""Mutable node tree for HTML templates.

Every node knows its parent (weakly) and its siblings. Parents own their
children; all structural edits go through the primitives on
:class:`TemplateNode` and :class:`InternalNode` so that the child list and the
links stay consistent.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Union

from macroview.runtime.escape import escape_html

if TYPE_CHECKING:
    from macroview.compiler.code import CodeNode

    Chunk = Union[str, CodeNode]


class TemplateNode:
    """Base class for all template nodes."""

    def __init__(self) -> None:
        self._parent: Optional[weakref.ReferenceType[InternalNode]] = None
        self.prev: Optional[TemplateNode] = None
        self.next: Optional[TemplateNode] = None

    @property
    def parent(self) -> Optional[InternalNode]:
        if self._parent is None:
            return None
        return self._parent()

    @property
    def root(self) -> TemplateNode:
        """Topmost ancestor, or the node itself when detached."""
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def is_attached(self) -> bool:
        return self.parent is not None

    def detach(self) -> TemplateNode:
        """Remove the node from its parent."""
        parent = self.parent
        if parent is not None:
            parent.remove(self)
        return self

    def replace_with(self, node: TemplateNode) -> TemplateNode:
        """Put ``node`` in this node's position and detach this node."""
        parent = self.parent
        if parent is None:
            raise ValueError("Cannot replace a detached node")
        parent.insert_before(node, self)
        parent.remove(self)
        return node

    def before(self, node: TemplateNode) -> TemplateNode:
        """Insert ``node`` as the previous sibling."""
        parent = self.parent
        if parent is None:
            raise ValueError("Cannot insert next to a detached node")
        parent.insert_before(node, self)
        return self

    def after(self, node: TemplateNode) -> TemplateNode:
        """Insert ``node`` as the next sibling."""
        parent = self.parent
        if parent is None:
            raise ValueError("Cannot insert next to a detached node")
        parent.insert_after(node, self)
        return self

    def chunks(self) -> Iterator[Chunk]:
        """Yield output chunks: literal markup strings and code nodes."""
        return iter(())

    def __str__(self) -> str:
        return "".join(str(chunk) for chunk in self.chunks())


class InternalNode(TemplateNode):
    """A node that owns an ordered sequence of children."""

    def __init__(self) -> None:
        super().__init__()
        self._children: List[TemplateNode] = []

    @property
    def first_child(self) -> Optional[TemplateNode]:
        return self._children[0] if self._children else None

    @property
    def last_child(self) -> Optional[TemplateNode]:
        return self._children[-1] if self._children else None

    def get_children(self) -> List[TemplateNode]:
        """Return a copy of the child list."""
        return list(self._children)

    def __iter__(self) -> Iterator[TemplateNode]:
        return iter(list(self._children))

    def __len__(self) -> int:
        return len(self._children)

    def __bool__(self) -> bool:
        # Empty containers are still real nodes
        return True

    def _adopt(self, node: TemplateNode, index: int) -> None:
        # The node must already be detached when the index is computed
        self._children.insert(index, node)
        node._parent = weakref.ref(self)
        node.prev = self._children[index - 1] if index > 0 else None
        node.next = (
            self._children[index + 1] if index + 1 < len(self._children) else None
        )
        if node.prev is not None:
            node.prev.next = node
        if node.next is not None:
            node.next.prev = node

    def _check_insertable(self, node: TemplateNode) -> None:
        ancestor: Optional[TemplateNode] = self
        while ancestor is not None:
            if ancestor is node:
                raise ValueError("Cannot insert a node into itself or its descendant")
            ancestor = ancestor.parent

    def _index(self, node: TemplateNode) -> int:
        for i, child in enumerate(self._children):
            if child is node:
                return i
        raise ValueError("Node is not a child of this node")

    def append(self, node: TemplateNode) -> InternalNode:
        self._check_insertable(node)
        node.detach()
        self._adopt(node, len(self._children))
        return self

    def prepend(self, node: TemplateNode) -> InternalNode:
        self._check_insertable(node)
        node.detach()
        self._adopt(node, 0)
        return self

    def insert_before(self, node: TemplateNode, ref: TemplateNode) -> InternalNode:
        self._check_insertable(node)
        node.detach()
        self._adopt(node, self._index(ref))
        return self

    def insert_after(self, node: TemplateNode, ref: TemplateNode) -> InternalNode:
        self._check_insertable(node)
        node.detach()
        self._adopt(node, self._index(ref) + 1)
        return self

    def remove(self, node: TemplateNode) -> TemplateNode:
        index = self._index(node)
        del self._children[index]
        if node.prev is not None:
            node.prev.next = node.next
        if node.next is not None:
            node.next.prev = node.prev
        node._parent = None
        node.prev = None
        node.next = None
        return node

    def clear(self) -> InternalNode:
        """Detach all children."""
        for child in list(self._children):
            self.remove(child)
        return self

    def chunks(self) -> Iterator[Chunk]:
        for child in list(self._children):
            yield from child.chunks()


class FragmentNode(InternalNode):
    """A list of nodes without markup of its own (document root, branches)."""


class TextNode(TemplateNode):
    """Raw character data."""

    def __init__(self, text: str) -> None:
        super().__init__()
        self.text = text

    @property
    def is_whitespace(self) -> bool:
        return not self.text.strip()

    def chunks(self) -> Iterator[Chunk]:
        if self.text:
            yield self.text

    def __repr__(self) -> str:
        return f"TextNode({self.text!r})"


AttributeValue = Optional[TemplateNode]


class HtmlNode(InternalNode):
    """An HTML element with attributes, macros and children."""

    VOID_ELEMENTS = {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }

    def __init__(
        self,
        tag: str,
        attributes: Optional[Dict[str, AttributeValue]] = None,
        macros: Optional[Dict[str, AttributeValue]] = None,
        line: Optional[int] = None,
    ) -> None:
        super().__init__()
        self.tag = tag
        self.line = line
        self.attributes: Dict[str, AttributeValue] = dict(attributes or {})
        self.macros: Dict[str, AttributeValue] = dict(macros or {})

    @property
    def is_void(self) -> bool:
        return self.tag.lower() in self.VOID_ELEMENTS

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def get_attribute(self, name: str) -> AttributeValue:
        return self.attributes.get(name)

    def set_attribute(self, name: str, value: AttributeValue) -> HtmlNode:
        self.attributes[name] = value
        return self

    def remove_attribute(self, name: str) -> HtmlNode:
        self.attributes.pop(name, None)
        return self

    def has_macro(self, name: str) -> bool:
        return name in self.macros

    def chunks(self) -> Iterator[Chunk]:
        yield "<" + self.tag
        for name, value in self.attributes.items():
            if value is None:
                yield " " + name
                continue
            yield " " + name + '="'
            if isinstance(value, TextNode):
                yield escape_html(value.text)
            else:
                yield from value.chunks()
            yield '"'
        yield ">"
        if self.is_void and not self._children:
            return
        yield from super().chunks()
        yield "</" + self.tag + ">"

    def __repr__(self) -> str:
        return f"HtmlNode({self.tag!r}, children={len(self)})"


class IfNode(TemplateNode):
    """A conditional with a ``then`` branch and an ``else_`` branch."""

    def __init__(self, test: str) -> None:
        super().__init__()
        self.test = test
        self.then = FragmentNode()
        self.else_ = FragmentNode()
        self.then._parent = weakref.ref(self)  # type: ignore[arg-type]
        self.else_._parent = weakref.ref(self)  # type: ignore[arg-type]

    def chunks(self) -> Iterator[Chunk]:
        from macroview.compiler.code import CodeNode, DEDENT, INDENT

        yield CodeNode(f"if {self.test}:", True, INDENT)
        yield from self.then.chunks()
        if len(self.else_):
            yield CodeNode("else:", True, DEDENT + INDENT)
            yield from self.else_.chunks()
        yield CodeNode("", True, DEDENT)

    def __repr__(self) -> str:
        return f"IfNode({self.test!r}, then={len(self.then)}, else_={len(self.else_)})"


class ForeachNode(InternalNode):
    """A loop; the children form the loop body."""

    def __init__(self, binding: str) -> None:
        super().__init__()
        self.binding = binding

    def chunks(self) -> Iterator[Chunk]:
        from macroview.compiler.code import CodeNode, DEDENT, INDENT

        yield CodeNode(f"for {self.binding}:", True, INDENT)
        yield from super().chunks()
        yield CodeNode("", True, DEDENT)

    def __repr__(self) -> str:
        return f"ForeachNode({self.binding!r}, children={len(self)})"
