"""
Subscription cards - the top subscribed channel per growth metric over a
window of daily channel snapshots.

For each channel the earliest and latest snapshot inside the window give a
delta (latest - earliest) and a growth rate (delta / earliest, None when the
earliest value is 0). Channels with a single snapshot in the window have a
delta of 0.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional

from ytmirror.services.metadata_store import MetadataStore
from ytmirror.services.trends import DEFAULT_WINDOW_DAYS, MAX_WINDOW_DAYS

# card name -> snapshot column
CARD_METRICS = {
    "subscriber_growth": "subscriber_count",
    "traffic": "view_count",
    "diligence": "video_count",
}


@dataclass
class CardChannel:
    id: str
    title: str
    custom_url: Optional[str]
    thumbnail_url: Optional[str]


@dataclass
class CardMetric:
    channel: CardChannel
    value: int
    growth_rate: Optional[float]


@dataclass
class SubscriptionCards:
    window_days: int
    start_date: date
    end_date: date
    top1: Dict[str, Optional[CardMetric]]


def _growth(first: int, last: int) -> tuple[int, Optional[float]]:
    delta = (last or 0) - (first or 0)
    return delta, (delta / first if first else None)


def build_subscription_cards(store: MetadataStore, user_id: str, days: Optional[int], today: date) -> SubscriptionCards:
    window_days = min(max(1, days or DEFAULT_WINDOW_DAYS), MAX_WINDOW_DAYS)
    start = today - timedelta(days=window_days)

    channel_ids = store.list_user_channel_ids(user_id)
    first_last: Dict[str, List] = {}
    for row in store.channel_snapshots_for(channel_ids, start, today):
        pair = first_last.setdefault(row.channel_id, [row, row])
        pair[1] = row

    channels = store.channels_by_id(first_last)
    top1: Dict[str, Optional[CardMetric]] = {}
    for card, column in CARD_METRICS.items():
        best: Optional[tuple] = None
        # Highest delta wins; ties go to the lowest channel id
        for channel_id in sorted(first_last):
            first, last = first_last[channel_id]
            delta, rate = _growth(getattr(first, column), getattr(last, column))
            if best is None or delta > best[1]:
                best = (channel_id, delta, rate)

        if best is None:
            top1[card] = None
            continue
        channel_id, delta, rate = best
        channel = channels.get(channel_id)
        top1[card] = CardMetric(
            channel=CardChannel(
                id=channel_id,
                title=channel.title if channel is not None else channel_id,
                custom_url=channel.custom_url if channel is not None else None,
                thumbnail_url=channel.thumbnail_url if channel is not None else None,
            ),
            value=delta,
            growth_rate=rate,
        )

    return SubscriptionCards(window_days=window_days, start_date=start, end_date=today, top1=top1)
