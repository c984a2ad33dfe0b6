"""
package.py
==========
Top-level selection over an ingested package tree.

Splits the root node into the three collections the rest of the system
consumes: global variables, callable executables and connection managers.
Both the SSIS 2008 layout (executables directly under the root) and the
2012+ layout (executables wrapped in `DTS:Executables`) are accepted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from dessist.core.exceptions import EmptyExecutableSetError
from dessist.core.node import (
    CONNECTION_MANAGER,
    CONNECTION_MANAGERS,
    EXECUTABLE,
    EXECUTABLES,
    Node,
)

logger = logging.getLogger(__name__)


@dataclass
class PackageContents:
    """
    The contract object returned by `select_package_contents`.
    Consumers should depend on this interface, not on the raw tree layout.
    """

    package_name: str
    root: Node
    variables: list[Node] = field(default_factory=list)
    executables: list[Node] = field(default_factory=list)
    connections: list[Node] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.executables


def _select_executables(root: Node) -> list[Node]:
    direct = root.find_children(EXECUTABLE)
    if direct:
        return direct
    nested: list[Node] = []
    for container in root.find_children(EXECUTABLES):
        nested.extend(container.find_children(EXECUTABLE))
    return nested


def _select_connections(root: Node) -> list[Node]:
    found = root.find_children(CONNECTION_MANAGER)
    for container in root.find_children(CONNECTION_MANAGERS):
        found.extend(container.find_children(CONNECTION_MANAGER))
    return found


def select_package_contents(root: Node, package_name: str | None = None) -> PackageContents:
    """
    Pick variables, executables and connection managers off the root node.

    An empty executable list is returned as-is; use `require_executables`
    (or `PackageContents.is_empty`) to decide whether that is fatal.
    """
    contents = PackageContents(
        package_name=package_name or root.name or "Package",
        root=root,
        variables=root.scoped_variables(),
        executables=_select_executables(root),
        connections=_select_connections(root),
    )
    logger.info(
        "Package '%s': %d variables, %d top-level executables, %d connection managers.",
        contents.package_name,
        len(contents.variables),
        len(contents.executables),
        len(contents.connections),
    )
    return contents


def require_executables(contents: PackageContents) -> PackageContents:
    if contents.is_empty:
        logger.error("No executables ('%s') found in package '%s'.", EXECUTABLE, contents.package_name)
        raise EmptyExecutableSetError(
            f"No executables ('{EXECUTABLE}') found in package '{contents.package_name}'."
        )
    return contents
