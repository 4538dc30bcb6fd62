"""
Catalogue of advisory access-level tags per platform type.

These tags describe the role a person holds on the external platform itself.
They are display-only and never consulted when deciding access.
"""

from typing import Dict, List, Optional

PLATFORM_ACCESS_LEVELS: Dict[str, List[str]] = {
    "Facebook": ["Admin", "Editor", "Moderator", "Advertiser", "Analyst"],
    "YouTube": ["Owner", "Manager", "Editor", "Viewer (Analytics)"],
    "Twitter": ["Admin", "Contributor"],
    "Pinterest": ["Owner", "Admin", "Contributor", "Viewer"],
    "LinkedIn": ["Super Admin", "Content Admin", "Analyst", "Recruiter"],
    "Website": ["Administrator", "Editor", "Author", "Contributor", "Viewer"],
    "SoundCloud": ["Admin", "Contributor"],
    "WhatsApp Channel": ["Admin", "Editor"],
    "Instagram": ["Admin", "Editor", "Moderator"],
    "TikTok": ["Admin", "Operator", "Analyst"],
    "Snapchat": ["Admin", "Contributor"],
}

DEFAULT_ACCESS_LEVELS: List[str] = ["Admin", "Editor", "Viewer"]

ACCESS_LEVEL_DESCRIPTIONS: Dict[str, Dict[str, str]] = {
    "Facebook": {
        "Admin": "Full control over the Page",
        "Editor": "Can create and publish posts, respond to messages",
        "Moderator": "Can respond to and delete comments and posts",
        "Advertiser": "Can create ads and view insights",
        "Analyst": "Can view insights only",
    },
    "YouTube": {
        "Owner": "Complete control over the channel",
        "Manager": "Can manage videos, playlists, and settings",
        "Editor": "Can upload and edit videos",
        "Viewer (Analytics)": "Can view analytics only",
    },
    "LinkedIn": {
        "Super Admin": "Full administrative control",
        "Content Admin": "Can create and manage content",
        "Analyst": "Can view analytics",
        "Recruiter": "Can post jobs and manage applications",
    },
}


def _match_platform(platform_type: str) -> Optional[str]:
    """Catalogue key for a platform type, matched case-insensitively."""
    if platform_type in PLATFORM_ACCESS_LEVELS:
        return platform_type
    lowered = (platform_type or "").lower()
    for key in PLATFORM_ACCESS_LEVELS:
        if key.lower() == lowered:
            return key
    return None


def get_access_levels_for_platform(platform_type: str) -> List[str]:
    """
    Access-level tags offered for a platform type.

    Args:
        platform_type: Platform type name, any case

    Returns:
        The platform's tags, or Admin/Editor/Viewer for unknown platforms
    """
    key = _match_platform(platform_type)
    if key is None:
        return list(DEFAULT_ACCESS_LEVELS)
    return list(PLATFORM_ACCESS_LEVELS[key])


def platform_supports_access_levels(platform_type: str) -> bool:
    return _match_platform(platform_type) is not None


def get_access_level_description(platform_type: str, access_level: str) -> str:
    """Human description of a tag; empty when none is catalogued."""
    return ACCESS_LEVEL_DESCRIPTIONS.get(platform_type, {}).get(access_level, "")
