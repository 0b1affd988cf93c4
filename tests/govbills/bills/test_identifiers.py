"""Tests for bill identifier parsing."""

import pytest

from govbills.bills.identifiers import (
    construct_bill_type,
    parse_bill_url,
    parse_legis_num,
    parse_version_code,
    split_bill_id,
)
from govbills.core.exceptions import BillIdentifierError


class TestParseBillUrl:
    @pytest.mark.parametrize(
        "url, expected",
        [
            (
                "https://www.govinfo.gov/content/pkg/BILLS-119hr1234ih/xml/BILLS-119hr1234ih.xml",
                (119, "hr", "1234", "ih"),
            ),
            ("BILLS-118s5enr.xml", (118, "s", "5", "enr")),
            ("BILLS-119hjres12eh.xml", (119, "hjres", "12", "eh")),
            ("BILLS-119sconres3ats.xml", (119, "sconres", "3", "ats")),
            ("BILLS-119HR77RH.xml", (119, "hr", "77", "rh")),
        ],
    )
    def test_parses_govinfo_names(self, url, expected):
        """Congress, type, number and version are read from the file name."""
        identifier = parse_bill_url(url)

        assert (
            identifier.congress,
            identifier.bill_type,
            identifier.bill_number,
            identifier.version_code,
        ) == expected

    def test_bill_id_excludes_version(self):
        """The bill id names the concept, not the version."""
        assert parse_bill_url("BILLS-119hr1234ih.xml").bill_id == "119-hr-1234"

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.govinfo.gov/content/pkg/BILLS-119hr1234ih/mods.xml",
            "BILLS-119hr1234ih.htm",
            "BILLS-11hr1ih.xml",
            "",
        ],
    )
    def test_rejects_other_names(self, url):
        """Anything not following the govinfo naming scheme raises."""
        with pytest.raises(BillIdentifierError):
            parse_bill_url(url)


class TestParseVersionCode:
    def test_reads_trailing_code(self):
        """The version code is the letters before .xml."""
        assert parse_version_code("BILLS-119hr1234eas.xml") == "eas"

    def test_missing_code_raises(self):
        """A file name with no version code is an error."""
        with pytest.raises(BillIdentifierError):
            parse_version_code("bill.xml")


class TestParseLegisNum:
    @pytest.mark.parametrize(
        "legis_num, bill_type, number",
        [
            ("H. R. 1234", "hr", "1234"),
            ("S. 5", "s", "5"),
            ("H. RES. 17", "hres", "17"),
            ("H. J. RES. 12", "hjres", "12"),
            ("S. J. RES. 3", "sjres", "3"),
            ("H. CON. RES. 9", "hconres", "9"),
            ("S.CON.RES. 41", "sconres", "41"),
            ("S.Res. 88", "sres", "88"),
        ],
    )
    def test_printed_numbers(self, legis_num, bill_type, number):
        """Printed legislative numbers map to lower-case type codes."""
        identifier = parse_legis_num(legis_num, "119th CONGRESS", "ih")

        assert identifier.congress == 119
        assert identifier.bill_type == bill_type
        assert identifier.bill_number == number
        assert identifier.version_code == "ih"

    def test_unreadable_number_raises(self):
        """Text without a chamber and number is rejected."""
        with pytest.raises(BillIdentifierError):
            parse_legis_num("A BILL", "119th CONGRESS", "ih")

    def test_unreadable_congress_raises(self):
        """The congress must contain a number."""
        with pytest.raises(BillIdentifierError):
            parse_legis_num("H. R. 1", "CONGRESS", "ih")


class TestHelpers:
    def test_construct_bill_type(self):
        """Chamber letters without a qualifier are plain bills."""
        assert construct_bill_type("H", None) == "hr"
        assert construct_bill_type("S", "") == "s"
        assert construct_bill_type("H", "J. RES.") == "hjres"

    def test_split_bill_id(self):
        """Well formed ids split into their parts; others give None."""
        assert split_bill_id("119-hr-999") == (119, "hr", "999")
        assert split_bill_id("119-hr") is None
        assert split_bill_id("abc-hr-1") is None
