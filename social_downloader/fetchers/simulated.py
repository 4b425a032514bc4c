"""Simulated fetcher that fabricates plausible video metadata.

Stands in for real platform clients: each call sleeps one unit delay to
model network latency, then returns a file record with random size and
engagement numbers.
"""

import asyncio
import json
import random
from datetime import timedelta
from typing import Optional

from social_downloader.fetchers.base import MediaFetcher
from social_downloader.jobs.models import Download, FetchedFile, utcnow


CATEGORIES = [
    "dance", "comedy", "tutorial", "music",
    "trending", "challenge", "lifestyle", "food",
]

UPLOAD_WINDOW_DAYS = 90


def sanitize_value(value: str) -> str:
    """Drop a leading '@' so handles can be used in filenames."""
    return value[1:] if value.startswith("@") else value


def build_filename(value: str, category: str, index: int, ext: str = "mp4") -> str:
    return f"{sanitize_value(value)}_{category}_{index:03d}.{ext}"


class SimulatedFetcher(MediaFetcher):
    def __init__(self, unit_delay_seconds: float = 1.0, rng: Optional[random.Random] = None):
        self._delay = unit_delay_seconds
        self._rng = rng or random.Random()

    async def fetch_one(self, download: Download, index: int) -> FetchedFile:
        await asyncio.sleep(self._delay)

        rng = self._rng
        category = rng.choice(CATEGORIES)
        filename = build_filename(download.value, category, index)
        uploaded = utcnow() - timedelta(seconds=rng.random() * UPLOAD_WINDOW_DAYS * 86400)

        metadata = {
            "duration": f"{rng.randint(15, 194)}s",
            "quality": "1080p" if download.is_bulk else "720p",
            "uploadDate": uploaded.isoformat(),
            "hashtags": ["#fyp", "#viral", "#trending", f"#{category}"],
        }

        return FetchedFile(
            filename=filename,
            url=f"/downloads/{download.id}/{filename}",
            size=f"{rng.random() * 4 + 0.5:.1f} MB",
            views=rng.randint(50_000, 5_049_999),
            likes=rng.randint(500, 200_499),
            comments=rng.randint(50, 15_049),
            metadata=json.dumps(metadata),
        )
