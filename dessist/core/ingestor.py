"""
ingestor.py
===========
Deterministic ingestion of SSIS `.dtsx` documents into the generic object tree.

Responsibilities:
    - Parse raw package XML with lxml; fail atomically on malformed input.
    - Flatten `DTS:Property` / `DTS:PropertyExpression` children into the
      owning node's property bag.
    - Preserve document order for attributes and child elements.
    - Surface skipped constructs (comments, processing instructions) as
      non-fatal diagnostics.

No knowledge of specific task semantics lives here.
"""

from __future__ import annotations

import logging
import warnings
from pathlib import Path

from lxml import etree

from dessist.config import ContentPrecedence
from dessist.core.exceptions import MalformedInputError, UnrecognizedNodeWarning
from dessist.core.node import (
    NAME_ATTRIBUTE,
    PROPERTY_EXPRESSION_TAG,
    PROPERTY_NAME_ATTRIBUTE,
    PROPERTY_TAG,
    Node,
)

logger = logging.getLogger(__name__)

_PROPERTY_TAGS = frozenset({PROPERTY_TAG, PROPERTY_EXPRESSION_TAG})


# ---------------------------------------------------------------------------
# Qualified-name helpers
# ---------------------------------------------------------------------------


def _qualify(clark_name: str, nsmap: dict[str | None, str]) -> str:
    """Turn an lxml `{uri}local` name back into the document's `prefix:local` form."""
    if not clark_name.startswith("{"):
        return clark_name
    uri, local = clark_name[1:].split("}", 1)
    for prefix, mapped_uri in nsmap.items():
        if mapped_uri == uri and prefix:
            return f"{prefix}:{local}"
    return local


def _element_kind(el: etree._Element) -> str:
    local = etree.QName(el).localname
    return f"{el.prefix}:{local}" if el.prefix else local


def _is_element(child: etree._Element) -> bool:
    # Comments, PIs and entities expose a callable `tag`, never a string.
    return isinstance(child.tag, str)


def _describe(child: etree._Element) -> str:
    if isinstance(child, etree._Comment):
        return "comment"
    if isinstance(child, etree._ProcessingInstruction):
        return "processing instruction"
    if isinstance(child, etree._Entity):
        return "entity reference"
    return type(child).__name__


def _warn_unrecognized(message: str) -> None:
    logger.warning(message)
    warnings.warn(message, UnrecognizedNodeWarning, stacklevel=3)


# ---------------------------------------------------------------------------
# Recursive element ingestion
# ---------------------------------------------------------------------------


def _read_property(el: etree._Element, owner: Node) -> None:
    prop_name: str | None = None
    for key, value in el.attrib.items():
        if _qualify(key, el.nsmap).lower() == PROPERTY_NAME_ATTRIBUTE.lower():
            prop_name = value
            break

    if prop_name is None:
        _warn_unrecognized(
            f"{_element_kind(el)} without a {PROPERTY_NAME_ATTRIBUTE} attribute under "
            f"'{owner.kind}' skipped."
        )
        return

    text = "".join(el.itertext())
    owner.properties[prop_name] = text
    if _element_kind(el) == PROPERTY_EXPRESSION_TAG:
        owner.expressions[prop_name] = text
    elif prop_name == "ObjectName" and owner.name is None:
        owner.name = text


def _declared_namespaces(element: etree._Element) -> dict[str, str]:
    parent = element.getparent()
    inherited = parent.nsmap if parent is not None else {}
    return {
        f"xmlns:{prefix}" if prefix else "xmlns": uri
        for prefix, uri in element.nsmap.items()
        if inherited.get(prefix) != uri
    }


def _assign_content(node: Node, text: str | None, precedence: ContentPrecedence) -> None:
    if text is None or not text.strip():
        return
    if precedence is ContentPrecedence.FIRST and node.content is not None:
        return
    node.content = text


def ingest(
    element: etree._Element,
    precedence: ContentPrecedence = ContentPrecedence.LAST,
) -> Node:
    """
    Convert one lxml element (and its subtree) into a `Node`.

    Parameters
    ----------
    element:
        An already-parsed lxml element.
    precedence:
        Which text segment becomes `content` when an element carries several.
    """
    node = Node(kind=_element_kind(element))

    node.attributes.update(_declared_namespaces(element))
    for key, value in element.attrib.items():
        node.attributes[_qualify(key, element.nsmap)] = value

    _assign_content(node, element.text, precedence)

    for child in element:
        if _is_element(child):
            kind = _element_kind(child)
            if kind in _PROPERTY_TAGS:
                _read_property(child, node)
            else:
                node.add_child(ingest(child, precedence))
        else:
            _warn_unrecognized(f"Skipped {_describe(child)} under '{node.kind}'.")
        # Text following any child, element or not, belongs to this node.
        _assign_content(node, child.tail, precedence)

    if node.name is None and NAME_ATTRIBUTE in node.attributes:
        node.name = node.attributes[NAME_ATTRIBUTE]

    return node


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _make_parser() -> etree.XMLParser:
    return etree.XMLParser(
        strip_cdata=False,
        resolve_entities=False,
        remove_blank_text=False,
        huge_tree=True,
    )


def parse_package_xml(
    raw: str | bytes,
    precedence: ContentPrecedence = ContentPrecedence.LAST,
) -> Node:
    """
    Parse a complete package document and return the root `Node`.

    Raises
    ------
    MalformedInputError
        If the document is not well-formed XML. No partial tree is returned.
    """
    logger.info("Beginning package XML ingestion.")
    data = raw.encode("utf-8") if isinstance(raw, str) else raw

    try:
        root_el = etree.fromstring(data, parser=_make_parser())
    except etree.XMLSyntaxError as exc:
        logger.error("XML syntax error: %s", exc)
        raise MalformedInputError(f"Malformed package XML: {exc}") from exc

    if root_el is None:
        raise MalformedInputError("Package XML contains no root element.")

    root = ingest(root_el, precedence)
    logger.info("Ingested root '%s' (%s) with %d children.", root.name, root.kind, len(root.children))
    return root


def parse_package_file(
    path: str | Path,
    precedence: ContentPrecedence = ContentPrecedence.LAST,
) -> Node:
    """Read and ingest a `.dtsx` file from disk."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        logger.error("Cannot read package file '%s': %s", path, exc)
        raise MalformedInputError(f"Cannot read package file '{path}': {exc}") from exc
    return parse_package_xml(data, precedence)
