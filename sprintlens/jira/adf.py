"""Flatten Atlassian Document Format (ADF) rich text into plain text."""

from typing import Any, List

LINE_BLOCKS = ("paragraph", "heading", "blockquote", "listItem")
LIST_BLOCKS = ("bulletList", "orderedList")


def adf_to_plain_text(document: Any) -> str:
    """
    Convert an ADF document (or any node of one) into plain text.

    Legacy endpoints return descriptions as plain strings; those are passed
    through stripped. ``None`` yields an empty string.
    """
    if document is None:
        return ""
    if isinstance(document, str):
        return document.strip()

    parts: List[str] = []

    def walk_children(node: dict) -> None:
        for child in node.get("content") or []:
            walk(child)

    def walk(node: Any) -> None:
        if isinstance(node, list):
            for item in node:
                walk(item)
            return
        if not isinstance(node, dict):
            return

        node_type = node.get("type")
        if node_type == "text":
            parts.append(node.get("text") or "")
        elif node_type in LINE_BLOCKS:
            walk_children(node)
            parts.append("\n")
        elif node_type in LIST_BLOCKS:
            walk_children(node)
        elif node_type == "hardBreak":
            parts.append("\n")
        elif node_type == "codeBlock":
            # only direct text leaves, no nested formatting
            for child in node.get("content") or []:
                if isinstance(child, dict) and child.get("type") == "text":
                    parts.append(child.get("text") or "")
            parts.append("\n")
        else:
            walk_children(node)

    walk(document)
    return "".join(parts).strip()
