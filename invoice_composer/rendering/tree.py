"""
Render Tree Module.

A render tree is a value snapshot of the rendered invoice surface: nodes
carry a tag, attributes, inline style declarations, text and children.
Exports clone it, normalize its styles, rasterize it or serialize it back
to markup, without touching the live tree the preview is showing.

Author: Invoice Composer Team
"""

import copy
import html
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

VOID_TAGS = {'img', 'br', 'hr', 'meta', 'link'}


@dataclass(eq=False)
class RenderNode:
    """
    One element of a render tree.

    Attributes:
        tag: Element name (div, table, td, img, ...).
        attrs: Attributes other than ``style`` (class, id, src, alt...).
        style: Inline style declarations, property -> value.
        text: Text content rendered before the children.
        children: Child nodes in document order.

    Example:
        >>> node = RenderNode("p", text="Thank you!", style={"color": "#9ca3af"})
        >>> node.to_html()
        '<p style="color: #9ca3af">Thank you!</p>'
    """
    tag: str
    attrs: Dict[str, str] = field(default_factory=dict)
    style: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: List['RenderNode'] = field(default_factory=list)

    @property
    def classes(self) -> List[str]:
        """Class names from the ``class`` attribute."""
        return self.attrs.get('class', '').split()

    def has_class_fragment(self, fragment: str) -> bool:
        """True if any class name contains ``fragment`` (like ``[class*=x]``)."""
        return fragment in self.attrs.get('class', '')

    def append(self, *nodes: 'RenderNode') -> 'RenderNode':
        """Append children and return self for chaining."""
        self.children.extend(nodes)
        return self

    def iter(self) -> Iterator['RenderNode']:
        """Depth-first iteration over this node and its descendants."""
        yield self
        for child in self.children:
            yield from child.iter()

    def find_all(self, predicate: Callable[['RenderNode'], bool]) -> List['RenderNode']:
        """All nodes in the subtree matching ``predicate``, in document order."""
        return [node for node in self.iter() if predicate(node)]

    def find(self, predicate: Callable[['RenderNode'], bool]) -> Optional['RenderNode']:
        """First node in the subtree matching ``predicate``."""
        for node in self.iter():
            if predicate(node):
                return node
        return None

    def clone(self) -> 'RenderNode':
        """Deep copy of the subtree; the copy shares nothing with the original."""
        return copy.deepcopy(self)

    def style_text(self) -> str:
        """Inline style serialized as ``prop: value; ...``."""
        return "; ".join(f"{prop}: {value}" for prop, value in self.style.items())

    def to_html(self) -> str:
        """Serialize the subtree to markup (outer HTML)."""
        parts = [f"<{self.tag}"]
        for name, value in self.attrs.items():
            parts.append(f' {name}="{html.escape(str(value), quote=True)}"')
        if self.style:
            parts.append(f' style="{html.escape(self.style_text(), quote=True)}"')
        parts.append(">")

        if self.tag in VOID_TAGS:
            return "".join(parts)

        parts.append(html.escape(self.text).replace("\n", "<br>"))
        parts.extend(child.to_html() for child in self.children)
        parts.append(f"</{self.tag}>")
        return "".join(parts)


class Document:
    """
    The live document hosting rendered surfaces.

    Holds the body subtree and the style rules currently active for it.
    Export clones are attached while they render and detached afterwards.

    Attributes:
        body: Root ``body`` node.
        stylesheets: Active CSS rule blocks, in cascade order.
        title: Document title.
    """

    def __init__(
        self,
        body: Optional[RenderNode] = None,
        stylesheets: Optional[List[str]] = None,
        title: str = ""
    ) -> None:
        self.body = body or RenderNode('body')
        self.stylesheets = list(stylesheets or [])
        self.title = title

    def attach(self, node: RenderNode) -> None:
        """Append a node to the end of the body."""
        self.body.children.append(node)

    def detach(self, node: RenderNode) -> bool:
        """
        Remove a node from wherever it sits in the document.

        Returns:
            True if the node was found and removed.
        """
        for parent in self.body.iter():
            for index, child in enumerate(parent.children):
                if child is node:
                    del parent.children[index]
                    return True
        return False

    def contains(self, node: RenderNode) -> bool:
        """True if the node (by identity) is part of the document."""
        return any(candidate is node for candidate in self.body.iter())

    def style_markup(self) -> str:
        """Active style rules as ``<style>`` blocks."""
        return "".join(f"<style>{rules}</style>" for rules in self.stylesheets)


def parse_px(value: Optional[str], default: float = 0.0, reference: Optional[float] = None) -> float:
    """
    Parse a CSS length into pixels.

    Supports ``px`` values, unitless numbers and percentages of
    ``reference``; anything else (``auto``, ``none``) yields ``default``.

    Example:
        >>> parse_px("40px")
        40.0
        >>> parse_px("50%", reference=794)
        397.0
    """
    if value is None:
        return default
    value = str(value).strip().lower()
    try:
        if value.endswith('px'):
            return float(value[:-2])
        if value.endswith('%'):
            if reference is None:
                return default
            return reference * float(value[:-1]) / 100
        return float(value)
    except ValueError:
        return default
