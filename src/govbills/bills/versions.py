"""Bill version ordering and status.

govinfo publishes one XML file per version of a bill, identified by a short
version code (ih, rh, eh, enr, ...). This module is the single source of truth
for which version supersedes which.
"""

from enum import Enum

UNKNOWN_PRIORITY = -1

# Stage of the legislative process reached by each version code.
# Codes on the same stage are treated as equivalent.
VERSION_PRIORITY: dict[str, int] = {
    # Introduced
    "ih": 0,
    "is": 0,
    # Committee, reported, calendar
    "rh": 1,
    "rs": 1,
    "rch": 1,
    "rcs": 1,
    "rfh": 1,
    "rfs": 1,
    "pch": 1,
    "pcs": 1,
    "rth": 1,
    "rts": 1,
    "rah": 1,
    "ras": 1,
    "cdh": 1,
    "cds": 1,
    # Passed or agreed to in one chamber
    "eh": 2,
    "es": 2,
    "eah": 2,
    "eas": 2,
    "ath": 2,
    "ats": 2,
    "rds": 2,
    "rdh": 2,
    "eph": 2,
    "cph": 2,
    "cps": 2,
    # Enrolled or public print
    "enr": 3,
    "pp": 3,
    # Became law
    "pl": 4,
}

VERSION_STATUS: dict[str, str] = {
    "ih": "Introduced in House",
    "is": "Introduced in Senate",
    "rh": "Reported in House",
    "rs": "Reported in Senate",
    "rch": "Referred to Committee (House)",
    "rcs": "Referred to Committee (Senate)",
    "pch": "Placed on Calendar (House)",
    "pcs": "Placed on Calendar (Senate)",
    "eh": "Passed House",
    "es": "Passed Senate",
    "eah": "Passed House (Amended)",
    "eas": "Passed Senate (Amended)",
    "enr": "Enrolled (Sent to President)",
    "pl": "Public Law",
    "cph": "Conference Report (House)",
    "cps": "Conference Report (Senate)",
    "pp": "Public Print",
    "sc": "Sponsor Changes",
    "ath": "Agreed to (House)",
    "ats": "Agreed to (Senate)",
}


class VersionComparison(str, Enum):
    UPGRADE = "upgrade"
    SAME = "same"
    DOWNGRADE = "downgrade"


def get_version_priority(version_code: str | None) -> int:
    """Priority of a version code; unknown or missing codes rank below everything."""
    if not version_code:
        return UNKNOWN_PRIORITY
    return VERSION_PRIORITY.get(version_code.lower(), UNKNOWN_PRIORITY)


def compare_versions(candidate: str, current: str | None) -> VersionComparison:
    """
    Compare a candidate version code against the currently stored one.

    Args:
        candidate: Version code of the newly observed document
        current: Version code currently stored for the bill (None if unknown)

    Returns:
        UPGRADE if the candidate is strictly further along, SAME if both are on the
        same stage, DOWNGRADE otherwise
    """
    new_priority = get_version_priority(candidate)
    current_priority = get_version_priority(current)

    if new_priority > current_priority:
        return VersionComparison.UPGRADE
    if new_priority == current_priority:
        return VersionComparison.SAME
    return VersionComparison.DOWNGRADE


def get_bill_status(version_code: str) -> str:
    """Human-readable status for a version code."""
    return VERSION_STATUS.get(version_code.lower(), f"Status: {version_code.upper()}")
