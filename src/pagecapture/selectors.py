"""Unique XPath and CSS selector synthesis for elements of a document tree."""

from __future__ import annotations

from typing import Any

from pagecapture.dom import is_instrumentation_node


def xpath_of(node: Any) -> str:
    node_id = usable_id(node)
    if node_id:
        return f"//*[@id={xpath_literal(node_id)}]"
    tag = _tag_of(node)
    parent = node.getparent()
    if parent is None:
        return f"/{tag}"
    position = 1 + _same_tag_preceding(node, tag)
    return f"{xpath_of(parent)}/{tag}[{position}]"


def css_selector_of(node: Any) -> str:
    path: list[str] = []
    current = node
    while current is not None:
        node_id = usable_id(current)
        if node_id:
            path.insert(0, f"#{css_escape_identifier(node_id)}")
            break
        tag = _tag_of(current)
        preceding = _same_tag_preceding(current, tag)
        # Qualified whenever any sibling shares the tag, first-of-type included.
        if preceding or _same_tag_following(current, tag):
            path.insert(0, f"{tag}:nth-of-type({preceding + 1})")
        else:
            path.insert(0, tag)
        current = current.getparent()
    return " > ".join(path)


def usable_id(node: Any) -> str:
    """The node's id when it identifies exactly one element of its document."""
    node_id = str(node.get("id") or "")
    if not node_id:
        return ""
    matches = node.getroottree().xpath("//*[@id=$value]", value=node_id)
    if len(matches) != 1:
        return ""
    return node_id


def xpath_literal(value: str) -> str:
    text = str(value)
    if '"' not in text:
        return f'"{text}"'
    if "'" not in text:
        return f"'{text}'"
    pieces = text.split('"')
    return "concat(" + ", '\"', ".join(f'"{piece}"' for piece in pieces) + ")"


def css_escape_identifier(value: str) -> str:
    text = str(value)
    if text == "-":
        return "\\-"
    out: list[str] = []
    for idx, ch in enumerate(text):
        code = ord(ch)
        if code == 0:
            out.append("\ufffd")
        elif (
            0x01 <= code <= 0x1F
            or code == 0x7F
            or (idx == 0 and "0" <= ch <= "9")
            or (idx == 1 and "0" <= ch <= "9" and text[0] == "-")
        ):
            out.append(f"\\{code:x} ")
        elif code >= 0x80 or ch in "-_" or (ch.isascii() and ch.isalnum()):
            out.append(ch)
        else:
            out.append(f"\\{ch}")
    return "".join(out)


def _tag_of(node: Any) -> str:
    tag = node.tag
    if not isinstance(tag, str):
        return ""
    return tag.lower()


def _same_tag_preceding(node: Any, tag: str) -> int:
    return sum(1 for sib in node.itersiblings(preceding=True) if _is_page_sibling(sib, tag))


def _same_tag_following(node: Any, tag: str) -> bool:
    return any(_is_page_sibling(sib, tag) for sib in node.itersiblings())


def _is_page_sibling(sib: Any, tag: str) -> bool:
    # Overlays are not part of the page and never shift positions.
    return _tag_of(sib) == tag and not is_instrumentation_node(sib)
