from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from govbills.core.models import GovBillsModel, ensure_utc


class Chamber(str, Enum):
    HOUSE = "House"
    SENATE = "Senate"


class BillIdentifier(BaseModel):
    """Natural key of a bill, optionally pinned to one version."""

    congress: int
    bill_type: str = Field(description="Lower-case type code, e.g. hr, s, hjres, hconres")
    bill_number: str
    version_code: Optional[str] = None

    @computed_field
    @property
    def bill_id(self) -> str:
        return f"{self.congress}-{self.bill_type}-{self.bill_number}"

    @property
    def chamber(self) -> Chamber:
        return Chamber.SENATE if self.bill_type.startswith("s") else Chamber.HOUSE

    @property
    def display_name(self) -> str:
        """Type and number as printed on the bill, e.g. 'HR 1234'."""
        return f"{self.bill_type.upper()} {self.bill_number}"


class SponsorRef(BaseModel):
    """A member named in a bill's introduction action."""

    name: str
    name_id: Optional[str] = Field(default=None, description="govinfo name-id attribute")


class ExtractedBill(BaseModel):
    """Everything read out of one bill XML document before enrichment."""

    identifier: BillIdentifier
    xml_url: str
    official_title: str
    short_title: Optional[str] = None
    sponsor: Optional[SponsorRef] = None
    cosponsors: list[SponsorRef] = Field(default_factory=list)
    committees: list[str] = Field(default_factory=list)
    action_date: Optional[date] = None
    full_text: str

    @property
    def version_code(self) -> str:
        return self.identifier.version_code

    @property
    def display_title(self) -> str:
        return self.short_title or self.official_title


class Citation(BaseModel):
    label: str
    section_id: str


class StructuredSection(BaseModel):
    title: str
    text: str
    citations: list[Citation] = Field(default_factory=list)


class BillSummary(BaseModel):
    """AI-generated enrichment for one bill version."""

    summary: str
    tagline: str
    impact_areas: list[str] = Field(default_factory=list)
    structured_summary: list[StructuredSection] = Field(default_factory=list)
    is_fallback: bool = Field(
        default=False, description="True when the model output was unusable and a template was used"
    )


class BillConcept(GovBillsModel):
    """Current state of a bill. Overwritten in place when a better version arrives."""

    id: str
    congress: int
    bill_type: str
    bill_number: str
    title: str
    short_title: Optional[str] = None
    sponsor_id: Optional[str] = None
    committees: list[str] = Field(default_factory=list)
    latest_version_code: str
    latest_action_date: Optional[date] = None
    status: str
    summary: str
    tagline: str
    impact_areas: list[str] = Field(default_factory=list)
    structured_summary: list[StructuredSection] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("updated_at", mode="before")
    @classmethod
    def ensure_updated_at_aware(cls, value: Any) -> datetime:
        return ensure_utc(value)


class BillVersionRecord(GovBillsModel):
    """One published document of a bill. Never modified after insert."""

    id: str
    bill_id: str
    version_code: str
    title: str
    published_date: date
    full_text: str
    xml_url: str
    text_length: int

    @classmethod
    def make_id(cls, bill_id: str, version_code: str) -> str:
        return f"{bill_id}/{version_code}"


class IngestionDecision(BaseModel):
    should_process: bool
    reason: str
    existing_bill_id: Optional[str] = None


class SummaryAttemptRecord(GovBillsModel):
    """Audit record of a summary that failed the quality gate."""

    congress: int
    bill_type: str
    bill_number: str
    version_code: str
    xml_url: str
    reason: str
    payload: dict[str, Any] = Field(default_factory=dict)


class Politician(GovBillsModel):
    """Member of Congress referenced as a sponsor or cosponsor."""

    govinfo_id: str
    name: str
    party: str = "Unknown"
    state: str = "Unknown"
    chamber: Chamber = Chamber.HOUSE
