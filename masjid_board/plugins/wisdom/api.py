"""
Per-plugin API for the quote of the day. Mounted at /api/components/wisdom/.
"""
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel


class WisdomResponse(BaseModel):
    text: str


def get_router(board_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/components/wisdom."""
    router = APIRouter(tags=["Daily Wisdom"])

    @router.get("/", response_model=WisdomResponse)
    def get_quote() -> WisdomResponse:
        return WisdomResponse(text=board_app.wisdom.get_quote())

    return router
