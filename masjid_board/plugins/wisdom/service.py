"""
Quote of the day from an optional external text provider, cached per calendar day.
"""
import logging
from datetime import date
from typing import Any, Callable, Dict, Optional

import requests

from masjid_board.core.cache_helper import CacheHelper

NO_PROVIDER_QUOTE = "Indeed, with hardship comes ease."
EMPTY_RESPONSE_QUOTE = "Patience is a pillar of faith."
ERROR_QUOTE = "Speak a good word or remain silent."

CACHE_KEY = "daily_wisdom_cache"


class DailyWisdomService:
    """
    Provider contract: GET <url> returns JSON {"text": "..."} (or "quote"), or plain text.
    api_key, when configured, is sent as a bearer token.
    """

    def __init__(self, config: Dict[str, Any], cache_dir: Optional[str] = None,
                 today: Callable[[], date] = date.today):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)
        self.cache_helper = CacheHelper(cache_dir, "wisdom", today=today)

    def get_quote(self, force_fetch: bool = False) -> str:
        if not force_fetch:
            cached = self.cache_helper.get_cached_content(CACHE_KEY)
            if cached:
                return cached

        url = self.config.get("url")
        if not url:
            return NO_PROVIDER_QUOTE

        try:
            text = self._fetch(url)
        except (requests.RequestException, ValueError) as e:
            self.logger.error(f"Wisdom provider error: {e}")
            return ERROR_QUOTE

        text = text or EMPTY_RESPONSE_QUOTE
        self.cache_helper.save_to_cache(CACHE_KEY, text)
        return text

    def _fetch(self, url: str) -> str:
        headers = {"Accept": "application/json"}
        api_key = self.config.get("api_key")
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self.logger.info(f"Fetching quote of the day from {url}")
        response = requests.get(url, headers=headers, timeout=float(self.config.get("timeout", 10)))
        response.raise_for_status()

        if "json" in response.headers.get("Content-Type", ""):
            data = response.json()
            if isinstance(data, dict):
                return str(data.get("text") or data.get("quote") or "").strip()
            return str(data or "").strip()
        return response.text.strip()
