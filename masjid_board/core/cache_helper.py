import os
import json
from datetime import date
import logging
from typing import Callable, Optional
import hashlib

logger = logging.getLogger(__name__)

class CacheHelper:
    """Day-scoped JSON file cache: an entry is only returned on the day it was written."""

    DEFAULT_CACHE_DIR = ".cache"

    def __init__(self, cache_dir: Optional[str] = None, component_name: str = "",
                 today: Callable[[], date] = date.today):
        """
        Args:
            cache_dir: Base cache directory from config, if None uses DEFAULT_CACHE_DIR
            component_name: Component specific subdirectory
            today: Returns the current calendar day
        """
        base_dir = os.path.expanduser(cache_dir or self.DEFAULT_CACHE_DIR)
        self.cache_dir = os.path.join(base_dir, component_name) if component_name else base_dir
        self.today = today
        os.makedirs(self.cache_dir, exist_ok=True)

    def _get_cache_file(self, key: str) -> str:
        key_hash = hashlib.md5(key.encode()).hexdigest()
        return os.path.join(self.cache_dir, f"{key_hash}.json")

    def get_cached_content(self, key: str) -> Optional[str]:
        """Cached content for key if it was saved today"""
        cache_file = self._get_cache_file(key)
        if not os.path.exists(cache_file):
            return None
        try:
            with open(cache_file, 'r') as f:
                cached = json.load(f)
            if cached.get('date') == self.today().isoformat():
                return cached['content']
            return None
        except (OSError, ValueError, KeyError) as e:
            logger.error(f"Error reading cache: {e}")
            return None

    def save_to_cache(self, key: str, content: str) -> None:
        """Save content under key, stamped with today's date"""
        try:
            cache_data = {
                'date': self.today().isoformat(),
                'content': content
            }
            with open(self._get_cache_file(key), 'w') as f:
                json.dump(cache_data, f)
        except OSError as e:
            logger.error(f"Error saving to cache: {e}")
