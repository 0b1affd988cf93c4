import re
import string
from typing import Union

from govbills.core.exceptions import BillParsingError

# A parsed XML node: a scalar leaf, a list of sibling nodes, or an element whose
# keys are child tag names, "@_"-prefixed attributes, or "#text".
Node = Union[str, int, float, bool, None, list["Node"], dict[str, "Node"]]

ATTRIBUTE_PREFIX = "@_"
TEXT_KEY = "#text"

# Tags that carry numbering, navigation or layout rather than legislative text
DEFAULT_IGNORED_TAGS = frozenset(
    {
        "enum",
        "header",
        "label",
        "toc",
        "pagebreak",
        "continuation-text",
        "footnote-ref",
        "xref",
        "target",
        "graphic",
        "table-column-spec",
    }
)

DEFAULT_MAX_DEPTH = 256

_MEANINGLESS_SCALAR = re.compile(rf"[\s{re.escape(string.punctuation)}]*")


def extract_text(
    node: Node,
    ignored_tags: frozenset[str] | set[str] = DEFAULT_IGNORED_TAGS,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> str:
    """
    Concatenate the meaningful text of a node tree in document order.

    Every kept scalar contributes its trimmed value followed by a single space,
    so callers usually collapse whitespace and strip the result.

    Args:
        node: Root of the tree
        ignored_tags: Child keys whose subtrees are skipped
        max_depth: Nesting limit; deeper trees are rejected

    Returns:
        The extracted text

    Raises:
        BillParsingError: If the tree is nested deeper than max_depth
    """
    parts: list[str] = []
    _collect(node, ignored_tags, max_depth, 0, parts)
    return "".join(parts)


def _collect(node: Node, ignored_tags, max_depth: int, depth: int, parts: list[str]) -> None:
    if depth > max_depth:
        raise BillParsingError(f"Markup nested deeper than {max_depth} levels")

    if node is None:
        return

    if isinstance(node, list):
        for item in node:
            _collect(item, ignored_tags, max_depth, depth + 1, parts)
        return

    if isinstance(node, dict):
        for key, child in node.items():
            if key.startswith(ATTRIBUTE_PREFIX) or key in ignored_tags:
                continue
            _collect(child, ignored_tags, max_depth, depth + 1, parts)
        return

    if isinstance(node, bool):
        text = "true" if node else "false"
    else:
        text = str(node).strip()

    if not text or _MEANINGLESS_SCALAR.fullmatch(text):
        return
    parts.append(text + " ")


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()
