"""Small HTML element tree built on the stdlib HTMLParser.

Order e-mails and catalog pages are table soup; all the parsers need is to
walk tables, read cell text, and pull attributes (image src, hrefs, JSON
blobs stashed in component attributes).
"""
from __future__ import annotations

import re
from html.parser import HTMLParser
from typing import Callable, Dict, Iterator, List, Optional, Union

VOID_TAGS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
}
BLOCK_TAGS = {
    "address", "blockquote", "br", "div", "dl", "dt", "dd", "h1", "h2", "h3",
    "h4", "h5", "h6", "hr", "li", "ol", "p", "pre", "section", "table",
    "tbody", "thead", "tfoot", "tr", "ul",
}
CELL_TAGS = {"td", "th"}

_BLANK_LINES_RE = re.compile(r"\n\s*\n+")
_INLINE_WS_RE = re.compile(r"[ \t\r\f\v\xa0]+")

AttrMatch = Union[str, bool, Callable[[Optional[str]], bool]]


class Node:
    __slots__ = ("tag", "attrs", "children", "parent")

    def __init__(self, tag: str, attrs: Optional[Dict[str, Optional[str]]] = None, parent: Optional["Node"] = None):
        self.tag = tag
        self.attrs = attrs or {}
        self.children: List[Union["Node", str]] = []
        self.parent = parent

    def __repr__(self) -> str:
        return f"<Node {self.tag} {self.attrs!r}>"

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        v = self.attrs.get(name)
        return default if v is None else v

    def has_class(self, name: str) -> bool:
        return name in (self.get("class") or "").split()

    # -------- traversal --------
    def iter(self, tag: Optional[str] = None) -> Iterator["Node"]:
        """Descendants in document order. Walks with a stack; mail can nest deep."""
        stack = self.elements()[::-1]
        while stack:
            node = stack.pop()
            if tag is None or node.tag == tag:
                yield node
            stack.extend(node.elements()[::-1])

    def find_all(self, tag: Optional[str] = None, **attrs: AttrMatch) -> List["Node"]:
        return [n for n in self.iter(tag) if _attrs_match(n, attrs)]

    def find(self, tag: Optional[str] = None, **attrs: AttrMatch) -> Optional["Node"]:
        for n in self.iter(tag):
            if _attrs_match(n, attrs):
                return n
        return None

    def elements(self) -> List["Node"]:
        return [c for c in self.children if isinstance(c, Node)]

    def next_element(self) -> Optional["Node"]:
        if self.parent is None:
            return None
        sibs = self.parent.elements()
        idx = sibs.index(self)
        return sibs[idx + 1] if idx + 1 < len(sibs) else None

    def ancestor(self, tag: str) -> Optional["Node"]:
        p = self.parent
        while p is not None and p.tag != tag:
            p = p.parent
        return p

    # -------- table helpers --------
    def rows(self) -> List["Node"]:
        """<tr> rows of this table, not descending into nested tables."""
        out: List[Node] = []
        for child in self.elements():
            if child.tag == "tr":
                out.append(child)
            elif child.tag in ("thead", "tbody", "tfoot"):
                out.extend(c for c in child.elements() if c.tag == "tr")
        return out

    def cells(self) -> List["Node"]:
        return [c for c in self.elements() if c.tag in CELL_TAGS]

    # -------- text --------
    def text(self) -> str:
        """Visible text with block elements on their own lines."""
        parts: List[str] = []
        _collect_text(self, parts, in_pre=self.tag == "pre")
        raw = "".join(parts)
        lines = [_INLINE_WS_RE.sub(" ", ln).strip() for ln in raw.split("\n")]
        return _BLANK_LINES_RE.sub("\n", "\n".join(lines)).strip()

    def inline_text(self) -> str:
        return " ".join(self.text().split())


def _collect_text(root: Node, parts: List[str], in_pre: bool) -> None:
    # Work items are (node, in_pre) pairs or literal separators
    stack: List[Union[str, tuple]] = [(root, in_pre)]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
            continue
        node, pre = item
        if node.tag in ("script", "style", "head", "title"):
            continue
        if node.tag == "br":
            parts.append("\n")
            continue
        work: List[Union[str, tuple]] = []
        for child in node.children:
            if isinstance(child, str):
                work.append(child if pre else child.replace("\n", " "))
                continue
            work.append((child, pre or child.tag == "pre"))
            if child.tag in BLOCK_TAGS:
                work.append("\n")
            elif child.tag in CELL_TAGS:
                work.append(" ")
        stack.extend(reversed(work))


def _attrs_match(node: Node, attrs: Dict[str, AttrMatch]) -> bool:
    for raw_name, want in attrs.items():
        name = "class" if raw_name == "class_" else raw_name.replace("_", "-")
        have = node.attrs.get(name)
        if callable(want):
            if not want(have):
                return False
        elif want is True:
            if name not in node.attrs:
                return False
        elif name == "class":
            if want not in (have or "").split():
                return False
        elif have != want:
            return False
    return True


class _TreeBuilder(HTMLParser):
    def __init__(self):
        # Entities in text and attribute values are decoded by HTMLParser
        super().__init__(convert_charrefs=True)
        self.root = Node("#document")
        self.stack: List[Node] = [self.root]

    @property
    def current(self) -> Node:
        return self.stack[-1]

    def _open_tags(self) -> List[str]:
        return [n.tag for n in self.stack]

    def _close_until(self, tag: str, stop_at: tuple) -> None:
        for i in range(len(self.stack) - 1, 0, -1):
            t = self.stack[i].tag
            if t == tag:
                del self.stack[i:]
                return
            if t in stop_at:
                return

    def handle_starttag(self, tag, attrs):
        # Implicitly close cells/rows/paragraphs the way browsers do
        if tag in CELL_TAGS:
            for t in CELL_TAGS:
                self._close_until(t, ("tr", "table"))
        elif tag == "tr":
            for t in ("td", "th", "tr"):
                self._close_until(t, ("table", "tbody", "thead", "tfoot"))
        elif tag in ("p", "div", "table", "h1", "h2", "h3", "h4", "h5", "h6") and self.current.tag == "p":
            self.stack.pop()

        node = Node(tag, {k: v for k, v in attrs}, parent=self.current)
        self.current.children.append(node)
        if tag not in VOID_TAGS:
            self.stack.append(node)

    def handle_startendtag(self, tag, attrs):
        node = Node(tag, {k: v for k, v in attrs}, parent=self.current)
        self.current.children.append(node)

    def handle_endtag(self, tag):
        if tag in VOID_TAGS:
            return
        if tag in self._open_tags()[1:]:
            self._close_until(tag, ())

    def handle_data(self, data):
        if data:
            self.current.children.append(data)


def parse_html(markup: str) -> Node:
    builder = _TreeBuilder()
    builder.feed(markup or "")
    builder.close()
    return builder.root


def html_to_text(markup: str) -> str:
    return parse_html(markup).text()


def looks_like_html(payload: str) -> bool:
    head = (payload or "")[:2000].lower()
    return "<html" in head or "<table" in head or "<body" in head or "<div" in head or "<pre" in head
