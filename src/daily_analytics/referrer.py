"""
Referrer tag labels for traffic source reporting.

The tracking script classifies document.referrer on the client and sends a
short tag instead of the full URL:
- direct: No referrer (typed URL, bookmarks, etc.)
- search_*: Search engine results
- social_*: Social media platforms

The server never sees or stores the referring URL. This module only maps the
tag to a display label. Matching is exact; unknown tags are reported as
"Other".
"""

from enum import Enum


class ReferrerTag(str, Enum):
    """Referrer tags understood by the report."""

    DIRECT = "direct"
    SEARCH_BAIDU = "search_baidu"
    SEARCH_GOOGLE = "search_google"
    SOCIAL_WEIBO = "social_weibo"
    SOCIAL_ZHIHU = "social_zhihu"
    SOCIAL_LINKEDIN = "social_linkedin"


DEFAULT_REFERRER = ReferrerTag.DIRECT.value
OTHER_LABEL = "Other"

SOURCE_LABELS = {
    ReferrerTag.DIRECT.value: "Direct",
    ReferrerTag.SEARCH_BAIDU.value: "Baidu Search",
    ReferrerTag.SEARCH_GOOGLE.value: "Google Search",
    ReferrerTag.SOCIAL_WEIBO.value: "Weibo",
    ReferrerTag.SOCIAL_ZHIHU.value: "Zhihu",
    ReferrerTag.SOCIAL_LINKEDIN.value: "LinkedIn",
}


def source_label(tag: str | None) -> str:
    """Get the display label for a referrer tag.

    Args:
        tag: Raw referrer tag from a record (e.g., "search_google")

    Returns:
        Display label, or "Other" for any tag not in SOURCE_LABELS
    """
    return SOURCE_LABELS.get(tag, OTHER_LABEL)
