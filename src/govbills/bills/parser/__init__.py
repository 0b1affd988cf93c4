"""
Parsing for govinfo bill XML.

Documents are converted to a plain node tree and their text is extracted by a
recursive walk that skips numbering, headers and layout markup, so that the
indexed text reads like the bill itself.
"""

from .text_extractor import DEFAULT_IGNORED_TAGS, Node, extract_text
from .xml_parser import BillXMLParser, element_to_node, parse_bill_xml

__all__ = [
    "BillXMLParser",
    "DEFAULT_IGNORED_TAGS",
    "Node",
    "element_to_node",
    "extract_text",
    "parse_bill_xml",
]
