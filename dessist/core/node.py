"""
node.py
=======
Generic object-tree model for SSIS package documents.

One `Node` shape represents every element of a `.dtsx` file: executables,
containers, variables, connection managers and task payloads alike. All
kind-specific behaviour lives in the emission engine, keyed by `Node.kind`
and `Node.executable_type`.
"""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from typing import Iterator

# ---------------------------------------------------------------------------
# Well-known DTS vocabulary
# ---------------------------------------------------------------------------

NAME_ATTRIBUTE = "DTS:ObjectName"
PROPERTY_NAME_ATTRIBUTE = "DTS:Name"

PROPERTY_TAG = "DTS:Property"
PROPERTY_EXPRESSION_TAG = "DTS:PropertyExpression"

EXECUTABLE = "DTS:Executable"
EXECUTABLES = "DTS:Executables"
VARIABLE = "DTS:Variable"
VARIABLES = "DTS:Variables"
VARIABLE_VALUE = "DTS:VariableValue"
CONNECTION_MANAGER = "DTS:ConnectionManager"
CONNECTION_MANAGERS = "DTS:ConnectionManagers"
OBJECT_DATA = "DTS:ObjectData"


# ---------------------------------------------------------------------------
# Node
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class Node:
    """
    A single ingested XML element.

    `properties` holds every `DTS:Property` / `DTS:PropertyExpression` child;
    `expressions` holds only the run-time bound subset. `parent` is a weak,
    non-owning back-reference used for scope and name lookups.
    """

    kind: str
    name: str | None = None
    attributes: dict[str, str] = field(default_factory=dict)
    properties: dict[str, str] = field(default_factory=dict)
    expressions: dict[str, str] = field(default_factory=dict)
    content: str | None = None
    children: list[Node] = field(default_factory=list)
    _parent: weakref.ref | None = field(default=None, repr=False)

    # ------------------------------------------------------------------
    # Tree links
    # ------------------------------------------------------------------

    @property
    def parent(self) -> Node | None:
        return self._parent() if self._parent is not None else None

    @parent.setter
    def parent(self, value: Node | None) -> None:
        self._parent = weakref.ref(value) if value is not None else None

    def add_child(self, child: Node) -> None:
        child.parent = self
        self.children.append(child)

    @property
    def root(self) -> Node:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def ancestors(self) -> Iterator[Node]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_property(self, key: str, default: str | None = None) -> str | None:
        return self.properties.get(key, default)

    def find_child(self, kind: str) -> Node | None:
        for child in self.children:
            if child.kind == kind:
                return child
        return None

    def find_children(self, kind: str) -> list[Node]:
        return [c for c in self.children if c.kind == kind]

    def iter_descendants(self) -> Iterator[Node]:
        """Depth-first, document-order walk of every node below this one."""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def lookup(self, key: str) -> str | None:
        """Read `key` from properties first, then from the `DTS:`-qualified attribute."""
        value = self.properties.get(key)
        if value is None:
            value = self.attributes.get(f"DTS:{key}")
        return value

    @property
    def executable_type(self) -> str | None:
        return self.lookup("ExecutableType") or self.lookup("CreationName")

    @property
    def dtsid(self) -> str | None:
        return self.lookup("DTSID")

    def executable_children(self) -> list[Node]:
        """Executables directly owned by this container, in document order."""
        found: list[Node] = []
        for child in self.children:
            if child.kind == EXECUTABLE:
                found.append(child)
            elif child.kind == EXECUTABLES:
                found.extend(child.find_children(EXECUTABLE))
        return found

    def scoped_variables(self) -> list[Node]:
        """Variables declared directly on this node (either format)."""
        found = self.find_children(VARIABLE)
        for container in self.find_children(VARIABLES):
            found.extend(container.find_children(VARIABLE))
        return found

    def __repr__(self) -> str:
        return f"Node(kind={self.kind!r}, name={self.name!r}, children={len(self.children)})"
