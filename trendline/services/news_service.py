"""Headlines per sport."""

import logging
from typing import List, Optional

from trendline.analytics.fallback import stable_hash
from trendline.api_clients.espn_client import EspnClient
from trendline.config import CacheConfig
from trendline.models.payloads import ArticlePayload
from trendline.models.trends import NewsArticle
from trendline.storage.cache import TTLCache

from .scoreboard import cache_key

logger = logging.getLogger(__name__)


def to_article(sport: str, payload: ArticlePayload) -> NewsArticle:
    article_id = payload.id or str(stable_hash(payload.headline or ""))
    return NewsArticle(
        id=f"news_{sport.upper()}_{article_id}",
        headline=payload.headline or "",
        sport=sport.upper(),
        description=payload.description or "",
        published=payload.published,
        link=payload.link,
        image=payload.image,
    )


class NewsService:

    def __init__(self, client: EspnClient, cache: TTLCache, cache_config: Optional[CacheConfig] = None):
        self.client = client
        self.cache = cache
        self.ttl = cache_config or CacheConfig()

    async def get_news(self, sport: str, limit: int = 20) -> List[NewsArticle]:
        sport = sport.upper()

        async def fetch():
            payloads = await self.client.fetch_news(sport, limit)
            return tuple(to_article(sport, p) for p in payloads)

        articles = await self.cache.get_or_fetch(cache_key(sport, "news", limit), self.ttl.news_ttl, fetch)
        return list(articles)
