import logging
import re
from datetime import date, datetime
from typing import Iterator, Optional

from bs4 import BeautifulSoup, Tag
from bs4.element import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction

from govbills.bills.identifiers import parse_legis_num, parse_version_code
from govbills.bills.models import ExtractedBill, SponsorRef
from govbills.bills.parser.text_extractor import (
    ATTRIBUTE_PREFIX,
    DEFAULT_IGNORED_TAGS,
    TEXT_KEY,
    Node,
    extract_text,
    normalize_whitespace,
)
from govbills.core.exceptions import BillParsingError, MissingRootElementError

logger = logging.getLogger(__name__)

# Tags that always become lists, even when they occur once
ALWAYS_ARRAY_TAGS = frozenset(
    {
        "cosponsor",
        "committee-name",
        "section",
        "subsection",
        "paragraph",
        "subparagraph",
        "clause",
        "subclause",
        "item",
    }
)

# Body divisions that only group sections
GROUPING_TAGS = frozenset({"division", "title", "subtitle", "part", "subpart", "chapter", "subchapter"})

NON_TEXT_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)

NO_OFFICIAL_TITLE = "No official title."

SHORT_TITLE_PATTERN = re.compile(
    r"This Act may be cited as the\s+[\"“`']+([^\"”']+?)[\"”']+"
    r"|This Act may be cited as the\s+([^.]+)\.",
    re.IGNORECASE,
)
QUOTE_CHARS = "\"'`“”‘’"


def element_to_node(element: Tag) -> Node:
    """
    Convert a BeautifulSoup element into a plain node tree.

    Attributes become "@_"-prefixed keys. An element with only text becomes a
    scalar, or {"@_attr": ..., "#text": ...} when it has attributes. Child
    elements are keyed by tag name; repeated tags and ALWAYS_ARRAY_TAGS become
    lists. Elements mixing text and child elements, or interleaving different
    child tags, become a list of parts in document order (under "#text" when
    the element also has attributes).
    """
    attributes = {f"{ATTRIBUTE_PREFIX}{name}": _attr_value(value) for name, value in element.attrs.items()}

    children = [
        child
        for child in element.children
        if isinstance(child, Tag)
        or (isinstance(child, NavigableString) and not isinstance(child, NON_TEXT_STRINGS))
    ]
    child_tags = [child for child in children if isinstance(child, Tag)]
    has_text = any(not isinstance(child, Tag) and child.strip() for child in children)

    if not child_tags:
        text = "".join(str(child) for child in children)
        if attributes:
            return {**attributes, TEXT_KEY: text}
        return text

    if has_text or _is_interleaved(child_tags):
        parts: list[Node] = []
        for child in children:
            if isinstance(child, Tag):
                node = element_to_node(child)
                parts.append({child.name: [node] if child.name in ALWAYS_ARRAY_TAGS else node})
            elif child.strip():
                parts.append(str(child))
        if attributes:
            return {**attributes, TEXT_KEY: parts}
        return parts

    grouped: dict[str, list[Node]] = {}
    for child in child_tags:
        grouped.setdefault(child.name, []).append(element_to_node(child))

    result: dict[str, Node] = dict(attributes)
    for name, nodes in grouped.items():
        if len(nodes) == 1 and name not in ALWAYS_ARRAY_TAGS:
            result[name] = nodes[0]
        else:
            result[name] = nodes
    return result


def _is_interleaved(tags: list[Tag]) -> bool:
    """True if some tag name reappears after a different one, e.g. a, b, a."""
    closed: set[str] = set()
    previous = None
    for tag in tags:
        if tag.name != previous:
            if tag.name in closed:
                return True
            if previous is not None:
                closed.add(previous)
            previous = tag.name
    return False


def _attr_value(value) -> str:
    # lxml-xml returns multi-valued attributes (e.g. class) as lists
    if isinstance(value, list):
        return " ".join(value)
    return value


def parse_govinfo_date(value: Optional[str]) -> Optional[date]:
    """Parse govinfo dates (YYYYMMDD or ISO); None when absent or unreadable."""
    if not value:
        return None
    value = value.strip()
    try:
        if re.fullmatch(r"\d{8}", value):
            return datetime.strptime(value, "%Y%m%d").date()
        if re.match(r"\d{4}-\d{2}-\d{2}", value):
            return date.fromisoformat(value[:10])
    except ValueError:
        logger.warning(f"Unreadable date: {value}")
    return None


def clean_short_title(title: Optional[str]) -> Optional[str]:
    if not title:
        return None
    title = normalize_whitespace(title).rstrip(".").strip(QUOTE_CHARS).strip()
    return title or None


class BillXMLParser:
    """Turns one govinfo bill XML document into an ExtractedBill."""

    def parse(self, soup: BeautifulSoup, xml_url: str) -> ExtractedBill:
        """
        Args:
            soup: Document parsed with the "xml" (lxml) parser
            xml_url: Source URL, used for the version code

        Returns:
            ExtractedBill with metadata and normalised full text

        Raises:
            MissingRootElementError: If there is no <bill> or <resolution> root
            BillIdentifierError: If the legislative number can't be parsed
            BillParsingError: If the document has no form or no body text
        """
        root = soup.find(["bill", "resolution"], recursive=False)
        if root is None:
            raise MissingRootElementError(
                f"No 'bill' or 'resolution' root element found in {xml_url}", url=xml_url
            )

        form = root.find("form", recursive=False)
        if form is None:
            raise BillParsingError(f"No <form> element in {xml_url}", url=xml_url)

        identifier = parse_legis_num(
            _text_of(form.find("legis-num")),
            _text_of(form.find("congress")),
            parse_version_code(xml_url),
        )

        official_title = normalize_whitespace(self._extract(form.find("official-title"))) or NO_OFFICIAL_TITLE

        body = root.find("legis-body", recursive=False) or root.find("resolution-body", recursive=False)
        full_text = self._body_text(body) if body is not None else ""
        if not full_text:
            raise BillParsingError(f"No bill text in {xml_url}", url=xml_url)

        intro_action = self._find_intro_action(form)
        sponsor, cosponsors, committees = self._extract_people(intro_action)

        extracted = ExtractedBill(
            identifier=identifier,
            xml_url=xml_url,
            official_title=official_title,
            short_title=self._extract_short_title(body, full_text),
            sponsor=sponsor,
            cosponsors=cosponsors,
            committees=committees,
            action_date=self._extract_action_date(root, form, intro_action),
            full_text=full_text,
        )

        logger.debug(
            f"Parsed bill {identifier.bill_id} ({identifier.version_code})",
            extra={
                "doc_id": identifier.bill_id,
                "version_code": identifier.version_code,
                "text_length": len(full_text),
                "committee_count": len(committees),
            },
        )
        return extracted

    def _extract(self, element: Optional[Tag]) -> str:
        if element is None:
            return ""
        return extract_text(element_to_node(element))

    def _body_text(self, body: Tag) -> str:
        """Body text with a blank line between top-level sections."""
        return "\n\n".join(block for block in self._body_blocks(body) if block)

    def _body_blocks(self, element: Tag) -> Iterator[str]:
        for child in element.find_all(True, recursive=False):
            if child.name in DEFAULT_IGNORED_TAGS:
                continue
            if child.name in GROUPING_TAGS and child.find("section") is not None:
                yield from self._body_blocks(child)
            else:
                yield normalize_whitespace(self._extract(child))

    def _find_intro_action(self, form: Tag) -> Optional[Tag]:
        for action in form.find_all("action", recursive=False):
            desc = action.find("action-desc")
            if desc is not None and desc.find("sponsor") is not None:
                return action
        return None

    def _extract_people(
        self, intro_action: Optional[Tag]
    ) -> tuple[Optional[SponsorRef], list[SponsorRef], list[str]]:
        if intro_action is None:
            return None, [], []

        desc = intro_action.find("action-desc")
        sponsor_tag = desc.find("sponsor")
        sponsor = SponsorRef(name=_text_of(sponsor_tag), name_id=sponsor_tag.get("name-id"))

        cosponsors = [
            SponsorRef(name=_text_of(tag), name_id=tag.get("name-id"))
            for tag in desc.find_all("cosponsor")
        ]
        committees = [_text_of(tag) for tag in desc.find_all("committee-name") if _text_of(tag)]
        return sponsor, cosponsors, committees

    def _extract_action_date(self, root: Tag, form: Tag, intro_action: Optional[Tag]) -> Optional[date]:
        candidates = []
        if intro_action is not None:
            candidates.append(intro_action.find("action-date"))
        candidates.append(form.find("action-date", recursive=False))
        for scope in (form, root):
            group = scope.find("attestation-group", recursive=False)
            if group is not None:
                candidates.append(group.find("attestation-date"))

        for tag in candidates:
            if tag is not None and tag.get("date"):
                parsed = parse_govinfo_date(tag["date"])
                if parsed is not None:
                    return parsed
        return None

    def _extract_short_title(self, body: Tag, full_text: str) -> Optional[str]:
        """
        Short title from the first section when it is headed "Short title",
        otherwise from the "This Act may be cited as the ..." sentence.
        """
        first_section = body.find("section", recursive=False) if body.name == "legis-body" else None
        if first_section is not None:
            header = first_section.find("header", recursive=False)
            if header is not None and _text_of(header).lower() == "short title":
                short_title_tag = first_section.find("short-title")
                if short_title_tag is not None:
                    return clean_short_title(_text_of(short_title_tag))

                section_text = normalize_whitespace(self._extract(first_section.find("text", recursive=False)))
                match = SHORT_TITLE_PATTERN.search(section_text)
                if match:
                    return clean_short_title(match.group(1) or match.group(2))
                return clean_short_title(section_text)

        match = SHORT_TITLE_PATTERN.search(full_text)
        if match:
            return clean_short_title(match.group(1) or match.group(2))
        return None


def _text_of(element: Optional[Tag]) -> str:
    if element is None:
        return ""
    return normalize_whitespace(element.get_text(" "))


def parse_bill_xml(content: bytes | str, xml_url: str) -> ExtractedBill:
    """Parse raw bill XML. Malformed markup is reported as BillParsingError."""
    soup = BeautifulSoup(content, "xml")
    return BillXMLParser().parse(soup, xml_url)
