import logging
from datetime import datetime
from typing import Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, field_validator

from govbills.bills.identifiers import VERSION_CODE_PATTERN
from govbills.core.exceptions import FetchError, RateLimitException
from govbills.core.http import HttpClient
from govbills.core.models import ensure_utc
from govbills.settings import (
    CONGRESS,
    EXCLUDED_VERSION_CODES,
    GOVINFO_BULKDATA_URL,
    SESSION,
)

logger = logging.getLogger(__name__)


class ManifestFile(BaseModel):
    """One entry of a govinfo bulk data listing."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    link: str
    last_modified: datetime = Field(alias="formattedLastModifiedTime")
    file_extension: Optional[str] = Field(default=None, alias="fileExtension")
    name: Optional[str] = None
    folder: bool = False

    @field_validator("last_modified", mode="before")
    @classmethod
    def parse_last_modified(cls, value):
        # govinfo sends e.g. "2025-01-10 17:32:42.297" without a zone; read it as UTC
        return ensure_utc(value)

    @property
    def is_xml(self) -> bool:
        if self.file_extension:
            return self.file_extension.lower() == "xml"
        return self.link.lower().endswith(".xml")


class BillScraper:
    """Lists and fetches bill XML files from govinfo bulk data."""

    def __init__(
        self,
        http_client: Optional[HttpClient] = None,
        base_url: str = GOVINFO_BULKDATA_URL,
        congress: int = CONGRESS,
        session: int = SESSION,
        excluded_version_codes: Optional[list[str]] = None,
    ):
        self.http_client = http_client or HttpClient()
        self.base_url = base_url.rstrip("/")
        self.congress = congress
        self.session = session
        self.excluded_version_codes = [
            code.lower()
            for code in (EXCLUDED_VERSION_CODES if excluded_version_codes is None else excluded_version_codes)
        ]

    def manifest_url(self, bill_type: str) -> str:
        return f"{self.base_url}/{self.congress}/{self.session}/{bill_type}/"

    def load_manifest(self, bill_type: str) -> list[ManifestFile]:
        """
        Fetch the listing for one bill type.

        Raises:
            FetchError: If the listing can't be fetched or isn't valid JSON
        """
        url = self.manifest_url(bill_type)
        try:
            data = self.http_client.get_json(url)
        except (requests.exceptions.RequestException, RateLimitException, ValueError) as e:
            raise FetchError(f"Failed to fetch manifest {url}: {e}", url=url) from e

        files = []
        for entry in data.get("files") or []:
            try:
                files.append(ManifestFile.model_validate(entry))
            except ValueError as e:
                logger.warning(f"Skipping unreadable manifest entry in {url}: {e}")
        return files

    def list_new_xml_files(self, bill_type: str, since: Optional[datetime]) -> list[str]:
        """
        XML files for a bill type modified strictly after `since`, newest first.

        Args:
            bill_type: govinfo bill type directory, e.g. "hr"
            since: Watermark; None means everything

        Returns:
            Document URLs
        """
        files = [
            f
            for f in self.load_manifest(bill_type)
            if not f.folder and f.is_xml and (since is None or f.last_modified > since)
        ]
        files = [f for f in files if not self._is_excluded(f.link)]
        files.sort(key=lambda f: f.last_modified, reverse=True)

        urls = [f.link for f in files]
        logger.info(
            f"Found {len(urls)} new XML files for {bill_type}",
            extra={"bill_type": bill_type, "since": since.isoformat() if since else None},
        )
        return urls

    def fetch_document(self, url: str) -> bytes:
        """
        Fetch the raw bytes of one XML document.

        Raises:
            FetchError: On any transport error or non-success status
        """
        try:
            return self.http_client.get_content(url)
        except (requests.exceptions.RequestException, RateLimitException) as e:
            raise FetchError(f"Failed to fetch {url}: {e}", url=url) from e

    def _is_excluded(self, link: str) -> bool:
        match = VERSION_CODE_PATTERN.search(link)
        return match is not None and match.group(1).lower() in self.excluded_version_codes
