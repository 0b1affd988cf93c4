"""Parse bill identifiers from govinfo file names and legislative numbers."""

import re

from govbills.bills.models import BillIdentifier
from govbills.core.exceptions import BillIdentifierError

# e.g. https://www.govinfo.gov/content/pkg/BILLS-119hr1234ih/xml/BILLS-119hr1234ih.xml
BILL_URL_PATTERN = re.compile(r"BILLS-(\d{3})([a-zA-Z]+?)(\d+)([a-zA-Z]{2,3})\.xml$")

# e.g. "H. R. 1234", "S. 5", "H. J. RES. 12", "S.CON.RES. 3"
LEGIS_NUM_PATTERN = re.compile(
    r"(S|H)\.?\s*(?:(J\.?\s*RES\.?|CON\.?\s*RES\.?|RES\.?|R\.?)\s*)?(\d+)",
    re.IGNORECASE,
)

VERSION_CODE_PATTERN = re.compile(r"\d([a-zA-Z]{2,3})\.xml$")


def parse_bill_url(url: str) -> BillIdentifier:
    """
    Parse the full identifier from a govinfo bill XML URL.

    Args:
        url: URL or file name ending in BILLS-<congress><type><number><version>.xml

    Returns:
        BillIdentifier including the version code

    Raises:
        BillIdentifierError: If the URL does not follow the govinfo naming scheme
    """
    match = BILL_URL_PATTERN.search(url)
    if not match:
        raise BillIdentifierError(f"Could not parse bill info from URL: {url}", url=url)

    congress, bill_type, bill_number, version_code = match.groups()
    return BillIdentifier(
        congress=int(congress),
        bill_type=bill_type.lower(),
        bill_number=bill_number,
        version_code=version_code.lower(),
    )


def parse_version_code(url: str) -> str:
    match = VERSION_CODE_PATTERN.search(url)
    if not match:
        raise BillIdentifierError(f"Could not parse version code from URL: {url}", url=url)
    return match.group(1).lower()


def construct_bill_type(chamber: str, qualifier: str | None) -> str:
    """Normalise a chamber letter and optional qualifier to a bill type code."""
    if not qualifier:
        return "s" if chamber.lower() == "s" else "hr"
    return re.sub(r"[\s.]", "", chamber + qualifier).lower()


def parse_legis_num(legis_num: str, congress_text: str, version_code: str) -> BillIdentifier:
    """
    Parse the printed legislative number of a bill, e.g. "H. J. RES. 12".

    Args:
        legis_num: Text of the <legis-num> element
        congress_text: Text of the <congress> element, e.g. "119th CONGRESS"
        version_code: Version code taken from the file name

    Returns:
        BillIdentifier

    Raises:
        BillIdentifierError: If either the number or the congress can't be read
    """
    match = LEGIS_NUM_PATTERN.search(legis_num or "")
    if not match:
        raise BillIdentifierError(f'Could not parse bill number/type from legis-num: "{legis_num}"')

    congress_match = re.search(r"\d+", congress_text or "")
    if not congress_match:
        raise BillIdentifierError(f'Could not parse congress from: "{congress_text}"')

    chamber, qualifier, bill_number = match.groups()
    return BillIdentifier(
        congress=int(congress_match.group(0)),
        bill_type=construct_bill_type(chamber, qualifier),
        bill_number=bill_number,
        version_code=version_code,
    )


def split_bill_id(bill_id: str) -> tuple[int, str, str] | None:
    """
    Split "<congress>-<type>-<number>" into its parts.

    Returns None when the identifier has the wrong shape or a non-numeric congress.
    """
    parts = bill_id.split("-")
    if len(parts) != 3 or not parts[0].isdigit():
        return None
    return int(parts[0]), parts[1], parts[2]
