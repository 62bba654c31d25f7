"""
Quick links shown on the board.
"""
from datetime import datetime, timezone
from typing import Optional

from masjid_board.core.state import AppState, ExternalLink


def add_link(state: AppState, title: str, url: str, now: Optional[datetime] = None) -> ExternalLink:
    if not title or not title.strip() or not url or not url.strip():
        raise ValueError("Link title and URL are required.")
    now = now or datetime.now(timezone.utc)
    link = ExternalLink(id=str(int(now.timestamp() * 1000)), title=title.strip(), url=url.strip())
    state.links.append(link)
    return link


def remove_link(state: AppState, link_id: str) -> bool:
    before = len(state.links)
    state.links = [link for link in state.links if link.id != link_id]
    return len(state.links) != before
