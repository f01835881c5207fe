"""DOM facts computed over an HTML snapshot of the preview.

Same xpath / css selector rules as the probe, over BeautifulSoup trees, so a
selector can be checked against ``frame.content()`` when the probe is not
running in the target.
"""

from __future__ import annotations

import re

import soupsieve
from bs4 import BeautifulSoup, Tag

from autoview.core.models import DOMNodeInfo

_ID_PREFIX_RE = re.compile(r"""^id\((?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)')\)""")
_STEP_RE = re.compile(r"^(?P<tag>[a-zA-Z][\w-]*)(?:\[(?P<index>\d+)\])?$")


def parse_snapshot(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _element_parent(tag: Tag) -> Tag | None:
    parent = tag.parent
    return parent if isinstance(parent, Tag) and parent.name != "[document]" else None


def _id_step(value: str) -> str | None:
    if '"' not in value:
        return f'id("{value}")'
    if "'" not in value:
        return f"id('{value}')"
    return None


def xpath_for(tag: Tag) -> str:
    step = _id_step(tag["id"]) if tag.get("id") else None
    if step is not None:
        return step
    if tag.name == "body":
        return "/html/body"
    parent = _element_parent(tag)
    if parent is None:
        return f"/{tag.name}"
    index = 1 + sum(1 for sibling in tag.find_previous_siblings(tag.name) if isinstance(sibling, Tag))
    return f"{xpath_for(parent)}/{tag.name}[{index}]"


def css_selector_for(tag: Tag) -> str:
    if tag.get("id"):
        return "#" + soupsieve.escape(tag["id"])
    classes = [name for name in tag.get("class", []) if name]
    if classes:
        return tag.name + "." + ".".join(soupsieve.escape(name) for name in classes)
    return tag.name


def dom_node_info(tag: Tag) -> DOMNodeInfo:
    """DOMNodeInfo without geometry (a snapshot carries no layout)."""
    attributes = {key: " ".join(value) if isinstance(value, list) else str(value) for key, value in tag.attrs.items()}
    return DOMNodeInfo(
        tag_name=tag.name,
        class_list=list(tag.get("class", [])),
        attributes=attributes,
        xpath=xpath_for(tag),
        css_selector=css_selector_for(tag),
    )


def resolve_xpath(soup: BeautifulSoup, xpath: str) -> Tag | None:
    """Resolve the xpath dialect produced by ``xpath_for`` (and the probe)."""
    current: Tag | None = soup
    # The id step is matched whole, an id may contain "/".
    match = _ID_PREFIX_RE.match(xpath)
    if match:
        element_id = match["dq"] if match["dq"] is not None else match["sq"]
        current = soup.find(id=element_id)
        xpath = xpath[match.end() :]
    elif not xpath.strip("/"):
        return None

    steps = [step for step in xpath.split("/") if step]

    for step in steps:
        match = _STEP_RE.match(step)
        if current is None or match is None:
            return None
        children = current.find_all(match["tag"].lower(), recursive=False)
        index = int(match["index"] or 1)
        current = children[index - 1] if 0 < index <= len(children) else None
    return current


def find_element(html: str, selector: str) -> DOMNodeInfo | None:
    """DOMNodeInfo of the first element matching a CSS selector, if any."""
    soup = parse_snapshot(html)
    try:
        tag = soup.select_one(selector)
    except soupsieve.SelectorSyntaxError:
        return None
    return dom_node_info(tag) if tag is not None else None
