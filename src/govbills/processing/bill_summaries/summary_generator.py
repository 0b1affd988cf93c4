"""Generate AI summaries for bills using Azure OpenAI."""

import json
import logging
import os
import re
from typing import Any

from openai import (
    APIConnectionError,
    APITimeoutError,
    AzureOpenAI,
    InternalServerError,
    OpenAIError,
    RateLimitError,
)

from govbills.bills.models import BillSummary, Citation, ExtractedBill, StructuredSection
from govbills.core.exceptions import SummarizationError
from govbills.settings import CHAT_DEPLOYMENT

logger = logging.getLogger(__name__)

# Azure OpenAI client (lazy loaded)
_openai_client: AzureOpenAI | None = None

# Leaves room for the prompt and the JSON answer in a 128K-token context
MAX_BILL_TEXT_CHARS = 300_000

# Errors worth retrying; anything else from the service falls back to the template
TRANSIENT_OPENAI_ERRORS = (APIConnectionError, APITimeoutError, RateLimitError, InternalServerError)

IMPACT_AREAS = [
    "Agriculture",
    "Armed Forces",
    "Civil Rights",
    "Commerce",
    "Crime",
    "Economics",
    "Education",
    "Energy",
    "Environment",
    "Finance",
    "Government Operations",
    "Health",
    "Housing",
    "Immigration",
    "International Affairs",
    "Labor",
    "Law",
    "Native Americans",
    "Public Lands",
    "Science",
    "Social Issues",
    "Social Security",
    "Sports",
    "Taxation",
    "Technology",
    "Transportation",
    "Water Resources",
]

FALLBACK_IMPACT_AREAS = ["Government Operations", "Law"]

BILL_SUMMARY_PROMPT = """Analyze this federal bill and provide:

1. A concise overall summary (3-6 sentences) explaining scope and intent.
2. A compelling one-sentence tagline that captures the essence of the bill.
3. 3-8 sections based on bill size. Each section must include a short title and 4-6 sentences of explanation.
4. For each section, include zero or more citations that map to specific parts of the bill text.
   - If the bill uses numbered sections (e.g., "SEC. 101" or "Section 202"), set sectionId to the numeric part (e.g., "101").
   - If numbered sections are not present, set sectionId to an EXACT 5-12 word phrase copied verbatim from the bill text that best anchors the cited passage.
   - The label can be human-friendly (e.g., "SEC. 101" or a short paraphrase), but sectionId MUST be numeric or the exact phrase from the text for reliable matching.
5. A list of impact areas from this predefined list: {impact_areas}.

Bill Details:
- Type: {bill_type}
- Number: {bill_number}
- Version: {version_code}
- Title: {official_title}
- Short Title: {short_title}
- Sponsor: {sponsor}
- Committees: {committees}

Full Bill Text:
{text}

Important formatting rules:
- Return ONLY a valid JSON object (no markdown or prose).
- Use this exact schema:
{{
  "summary": string,
  "tagLine": string,
  "impactAreas": string[],
  "structuredSummary": [
    {{ "title": string, "text": string, "citations": [{{ "label": string, "sectionId": string }}] }}
  ]
}}
If citations are unavailable for a section, set "citations": []."""

_CODE_FENCE_START = re.compile(r"^```[a-zA-Z]*\n")
_CODE_FENCE_END = re.compile(r"\n```\s*$")


def get_openai_client() -> AzureOpenAI:
    """Lazy load Azure OpenAI client."""
    global _openai_client
    if _openai_client is None:
        _openai_client = AzureOpenAI(
            api_key=os.getenv("AZURE_OPENAI_API_KEY"),
            api_version="2025-03-01-preview",  # Responses API
            azure_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT"),
            max_retries=0,  # retried per step by the orchestrator
        )
        logger.info("Azure OpenAI client initialised for bill summary generation")
    return _openai_client


def build_prompt(extracted: ExtractedBill) -> tuple[str, bool]:
    """Render the summary prompt, truncating very long bills. Returns (prompt, was_truncated)."""
    text = extracted.full_text
    was_truncated = len(text) > MAX_BILL_TEXT_CHARS
    if was_truncated:
        text = text[:MAX_BILL_TEXT_CHARS] + "\n\n[... bill text truncated ...]"
        logger.info(
            f"Truncated bill text for {extracted.identifier.bill_id} "
            f"from {len(extracted.full_text)} to {MAX_BILL_TEXT_CHARS} chars"
        )

    identifier = extracted.identifier
    prompt = BILL_SUMMARY_PROMPT.format(
        impact_areas=json.dumps(IMPACT_AREAS),
        bill_type=identifier.bill_type.upper(),
        bill_number=identifier.bill_number,
        version_code=identifier.version_code,
        official_title=extracted.official_title,
        short_title=extracted.short_title or "None",
        sponsor=extracted.sponsor.name if extracted.sponsor else "N/A",
        committees=", ".join(extracted.committees) or "None",
        text=text,
    )
    return prompt, was_truncated


def fallback_summary(extracted: ExtractedBill) -> BillSummary:
    """Templated summary used when the model output can't be used."""
    name = extracted.identifier.display_name
    return BillSummary(
        summary=(
            f"This {name} ({extracted.official_title}) introduces new federal legislation. "
            "The bill contains multiple provisions and would impact various aspects of "
            "federal policy if enacted."
        ),
        tagline=f"{name} introduces new federal legislation with multiple policy provisions.",
        impact_areas=list(FALLBACK_IMPACT_AREAS),
        structured_summary=[],
        is_fallback=True,
    )


def strip_code_fences(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("```"):
        raw = _CODE_FENCE_END.sub("", _CODE_FENCE_START.sub("", raw))
    return raw


def _normalise_sections(value: Any) -> list[StructuredSection]:
    if not isinstance(value, list):
        return []

    sections = []
    for item in value:
        if not isinstance(item, dict):
            continue
        citations = []
        for citation in item.get("citations") or []:
            if not isinstance(citation, dict):
                continue
            label, section_id = citation.get("label"), citation.get("sectionId")
            if label is None and section_id is None:
                continue
            if label is None:
                label = f"SEC. {section_id}"
            citations.append(Citation(label=str(label), section_id="" if section_id is None else str(section_id)))
        sections.append(
            StructuredSection(
                title=str(item.get("title") or ""),
                text=str(item.get("text") or ""),
                citations=citations,
            )
        )
    return sections


def parse_summary_response(raw: str, extracted: ExtractedBill) -> BillSummary:
    """
    Parse the model's JSON answer.

    Output that isn't JSON, or lacks summary, tagLine or impactAreas, is replaced
    by the fallback template (which the quality gate then rejects).
    """
    try:
        data = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError:
        logger.error(
            f"Failed to parse AI response as JSON for {extracted.identifier.bill_id}",
            extra={"doc_id": extracted.identifier.bill_id, "response_preview": raw[:200]},
        )
        return fallback_summary(extracted)

    if (
        not isinstance(data, dict)
        or not data.get("summary")
        or not data.get("tagLine")
        or not isinstance(data.get("impactAreas"), list)
    ):
        logger.error(f"Invalid AI response structure for {extracted.identifier.bill_id}")
        return fallback_summary(extracted)

    return BillSummary(
        summary=str(data["summary"]),
        tagline=str(data["tagLine"]),
        impact_areas=[str(area) for area in data["impactAreas"]],
        structured_summary=_normalise_sections(data.get("structuredSummary")),
    )


class BillSummaryGenerator:
    """Calls the summarization model for one bill at a time."""

    def __init__(self, client: AzureOpenAI | None = None, model: str = CHAT_DEPLOYMENT):
        self._client = client
        self.model = model

    @property
    def client(self) -> AzureOpenAI:
        if self._client is None:
            self._client = get_openai_client()
        return self._client

    def generate(self, extracted: ExtractedBill) -> BillSummary:
        """
        Generate a summary for an extracted bill.

        Args:
            extracted: Parsed bill

        Returns:
            BillSummary, possibly the fallback template

        Raises:
            SummarizationError: On connection, timeout, rate limit or server errors
        """
        prompt, _ = build_prompt(extracted)
        bill_id = extracted.identifier.bill_id

        logger.info(f"Generating summary for bill {bill_id} using {self.model}")
        try:
            response = self.client.responses.create(model=self.model, input=prompt)
        except TRANSIENT_OPENAI_ERRORS as e:
            raise SummarizationError(
                f"Summary generation failed for {bill_id}: {e}", url=extracted.xml_url
            ) from e
        except OpenAIError as e:
            # e.g. content filter or bad request; retrying won't help
            logger.error(f"Failed to generate summary for bill {bill_id}: {e}")
            return fallback_summary(extracted)

        summary = parse_summary_response(response.output_text or "", extracted)
        if not summary.is_fallback:
            logger.info(f"Successfully generated summary for bill {bill_id}")
        return summary
