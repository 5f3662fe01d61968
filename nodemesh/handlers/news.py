"""
News handler backed by newsapi.org.

Lookup order (first non-empty batch wins):
    1. top headlines for the derived keywords (or the default category when
       no keywords survive filtering)
    2. top headlines for the default category (only when step 1 used keywords)
    3. /everything search over the last three days (only with keywords)
"""

import re
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from ..config import RouterConfig
from ..degradation import DegradationChain, Stage
from .base import as_dict, as_text, fetch_json

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "News service is not configured yet. Please add NEWS_API_KEY."
DEGRADED_MESSAGE = "Sorry, I had trouble fetching the latest news just now. Please try again in a moment."
NO_ARTICLES_MESSAGE = "I couldn't find any news articles right now. Please try again later."

DESCRIPTION_LIMIT = 120
EVERYTHING_LOOKBACK_DAYS = 3

KEYWORD_BLACKLIST = frozenset({
    "news", "headline", "headlines", "top", "latest", "get", "me", "whatever", "you", "u", "have",
    "about", "on", "regarding", "of", "in", "for", "the", "a", "an", "to", "and", "or", "us", "usa",
    "today", "current", "what", "whats", "any", "show", "tell", "give", "some", "please", "article",
    "articles", "update", "updates", "breaking",
})

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def extract_news_keywords(text: Optional[str], max_keywords: int = 4) -> str:
    """
    Compact keyword query from free text.

    Lowercases, replaces punctuation with spaces, drops blacklisted words and
    words of two characters or fewer, and keeps the first max_keywords.
    """
    if not text:
        return ""
    words = _NON_ALNUM.sub(" ", text.lower()).split()
    kept = [w for w in words if w not in KEYWORD_BLACKLIST and len(w) > 2]
    return " ".join(kept[:max_keywords])


def _format_published(value: Any) -> str:
    if not isinstance(value, str) or not value:
        return "Unknown date"
    try:
        published = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return "Unknown date"
    return published.strftime("%b %d, %I:%M %p")


def usable_articles(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Article objects from a newsapi.org body; anything not shaped like an article is dropped."""
    articles = data.get("articles")
    if not isinstance(articles, list):
        return []
    return [a for a in articles if isinstance(a, dict)]


def format_articles(articles: List[Dict[str, Any]], title: str) -> str:
    """Numbered entries: title, source, timestamp, truncated description, link."""
    entries = []
    for index, article in enumerate((a for a in articles if isinstance(a, dict)), start=1):
        headline = as_text(article.get("title")) or "Untitled article"
        source = as_text(as_dict(article.get("source")).get("name")) or "Unknown source"
        published = _format_published(article.get("publishedAt"))
        description = as_text(article.get("description"))
        url = as_text(article.get("url"))

        entry = f"**{index}. {headline}**\n"
        entry += f"   📰 *{source}* • 🕐 {published}\n"
        if description:
            if len(description) > DESCRIPTION_LIMIT:
                description = description[:DESCRIPTION_LIMIT] + "..."
            entry += f"   {description}\n"
        if url:
            entry += f"   🔗 [Read more]({url})\n"
        entries.append(entry)

    return f"**📰 {title}**\n\n" + "\n".join(entries)


class NewsHandler:
    """Answers news intents for a topic slot (or the raw message)."""

    def __init__(self, config: RouterConfig, client: httpx.AsyncClient):
        self.config = config
        self.client = client

    @property
    def _headers(self) -> Dict[str, str]:
        return {"X-Api-Key": self.config.news_api_key}

    @property
    def _category_title(self) -> str:
        return f"Today's Top {self.config.news_country.upper()} {self.config.news_default_category.title()} Headlines"

    async def handle(self, topic: str, original_message: str) -> str:
        if not self.config.news_configured:
            return NOT_CONFIGURED_MESSAGE

        keywords = extract_news_keywords((topic or "").strip() or original_message, self.config.news_max_keywords)
        logger.info(f"News lookup: topic={topic or 'N/A'} keywords={keywords or 'N/A'}")

        if keywords:
            stages = [
                Stage("headlines:keywords", lambda: self._top_headlines({"q": keywords}, f'Latest on "{keywords}"')),
                Stage(
                    "headlines:category",
                    lambda: self._top_headlines({"category": self.config.news_default_category}, self._category_title),
                ),
                Stage("everything", lambda: self._everything(keywords)),
            ]
        else:
            stages = [
                Stage(
                    "headlines:category",
                    lambda: self._top_headlines({"category": self.config.news_default_category}, self._category_title),
                ),
            ]

        outcome = await DegradationChain("news", stages).run()
        if outcome.value is not None:
            return outcome.value

        if len(outcome.errors()) == len(outcome.failures):
            logger.error(f"❌ News API unavailable: {[f.description for f in outcome.failures]}")
            return DEGRADED_MESSAGE

        if keywords:
            return f'I couldn\'t find any recent news articles about "{keywords}".'
        return NO_ARTICLES_MESSAGE

    async def _top_headlines(self, params: Dict[str, Any], title: str) -> Optional[str]:
        query = {"country": self.config.news_country, "pageSize": self.config.news_page_size, **params}
        data = await fetch_json(
            self.client, "news", f"{self.config.news_base_url}/top-headlines", params=query, headers=self._headers
        )
        articles = usable_articles(data)
        return format_articles(articles, title) if articles else None

    async def _everything(self, keywords: str) -> Optional[str]:
        since = (datetime.now(timezone.utc) - timedelta(days=EVERYTHING_LOOKBACK_DAYS)).date().isoformat()
        query = {
            "q": keywords,
            "from": since,
            "sortBy": "publishedAt",
            "language": "en",
            "pageSize": self.config.news_page_size,
        }
        data = await fetch_json(
            self.client, "news", f"{self.config.news_base_url}/everything", params=query, headers=self._headers
        )
        articles = usable_articles(data)
        return format_articles(articles, f'Latest articles about "{keywords}"') if articles else None
