"""Macro registry and the rewriting pass that applies it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from macroview.compiler.exceptions import InvalidTemplateError
from macroview.compiler.nodes import AttributeValue, HtmlNode, InternalNode, TemplateNode

logger = logging.getLogger(__name__)

MacroHandler = Callable[[HtmlNode, AttributeValue], None]


@dataclass(frozen=True)
class MacroEntry:
    name: str
    handler: MacroHandler
    priority: int
    order: int


class MacroRegistry:
    """Maps macro names to handlers with an application priority.

    Macros with a lower priority run first. Macros with equal priority run in
    registration order.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, MacroEntry] = {}
        self._counter = 0

    def register(self, name: str, handler: MacroHandler, priority: int = 50) -> None:
        existing = self._entries.get(name)
        order = existing.order if existing else self._counter
        if not existing:
            self._counter += 1
        self._entries[name] = MacroEntry(name, handler, priority, order)

    def unregister(self, name: str) -> None:
        self._entries.pop(name, None)

    def get(self, name: str) -> Optional[MacroEntry]:
        return self._entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def names(self) -> List[str]:
        return [entry.name for entry in self._sorted(self._entries.values())]

    def ordered_for(self, node: HtmlNode) -> List[MacroEntry]:
        """Registered macros present on ``node`` in application order."""
        return self._sorted(
            self._entries[name] for name in node.macros if name in self._entries
        )

    @staticmethod
    def _sorted(entries: Iterable[MacroEntry]) -> List[MacroEntry]:
        return sorted(entries, key=lambda e: (e.priority, e.order))


class MacroDispatcher:
    """Applies registered macros to every element of a tree, in document order."""

    def __init__(self, registry: MacroRegistry) -> None:
        self.registry = registry

    def apply(self, root: InternalNode) -> InternalNode:
        # Each stack entry is the next node to visit at one tree level.
        stack: List[Optional[TemplateNode]] = [root.first_child]
        while stack:
            node = stack.pop()
            if node is None:
                continue
            # Handlers only touch the node and what precedes it.
            stack.append(node.next)
            if not isinstance(node, HtmlNode):
                continue
            self.apply_node(node)
            if node.is_attached:
                stack.append(node.first_child)
        return root

    def apply_node(self, node: HtmlNode) -> None:
        for entry in self.registry.ordered_for(node):
            if not node.is_attached:
                logger.debug(
                    "Skipping macro %r on detached <%s>", entry.name, node.tag
                )
                break
            value = node.macros.pop(entry.name)
            logger.debug("Applying macro %r to <%s>", entry.name, node.tag)
            try:
                entry.handler(node, value)
            except InvalidTemplateError as e:
                if e.line is None and node.line is not None:
                    raise e.with_location(None, node.line) from e
                raise
        for name in list(node.macros):
            if name not in self.registry:
                logger.warning("Unknown macro %r on <%s>", name, node.tag)
                del node.macros[name]
