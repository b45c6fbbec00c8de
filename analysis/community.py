from __future__ import annotations

from datetime import datetime

from core.schemas import CommunityOverview, ForumOverview, SocialOverview
from core.stats import isoformat, utcnow

TOP_NEGATIVE_LIMIT = 20


def aggregate_community(
    forum: ForumOverview | None,
    social: SocialOverview | None,
    now: datetime | None = None,
) -> CommunityOverview:
    """Merge forum and social overviews into the combined community view.

    Only the social source carries a sentiment signal, so the overall
    sentiment and the negative items both come from it alone.
    """
    combined: dict[str, int] = {}
    for overview in (forum, social):
        if overview is None:
            continue
        for category, count in overview.complaint_category_counts.items():
            combined[category] = combined.get(category, 0) + count

    top_category: str | None = None
    max_count = 0
    for category, count in combined.items():
        if count > max_count:
            max_count = count
            top_category = category

    overall_sentiment = social.average_sentiment if social and social.available else None

    negatives = []
    if social is not None:
        negatives = [
            item.model_copy(update={"source": "reddit"})
            for item in social.top_negative_items
        ]
    negatives.sort(key=lambda item: item.sentiment)

    return CommunityOverview(
        forum=forum.model_copy(deep=True) if forum else None,
        social=social.model_copy(deep=True) if social else None,
        combined_complaint_categories=combined,
        top_complaint_category=top_category,
        overall_sentiment=overall_sentiment,
        top_negative_items=negatives[:TOP_NEGATIVE_LIMIT],
        fetched_at=isoformat(now or utcnow()),
    )
