"""
Per-plugin API for quick links. Mounted at /api/components/links/.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from masjid_board.api.security import SyncResponse, http_errors, require_user
from masjid_board.core.state import AppState, ExternalLink, User, WireModel
from .service import add_link, remove_link


class LinkBody(WireModel):
    title: str
    url: str


class LinkResponse(WireModel):
    link: Optional[ExternalLink] = None
    sync: SyncResponse


def get_router(board_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/components/links."""
    router = APIRouter(tags=["Links"])
    current_user = require_user(board_app)

    @router.get("/", response_model=List[ExternalLink])
    def list_links() -> List[ExternalLink]:
        return list(board_app.coordinator.state.links)

    @router.post("/", response_model=LinkResponse, status_code=201)
    def create_link(body: LinkBody, user: User = Depends(current_user)) -> LinkResponse:
        created = {}

        def apply(state: AppState) -> None:
            created["link"] = add_link(state, body.title, body.url)

        with http_errors():
            _, result = board_app.coordinator.mutate(apply)
        board_app.tick()
        return LinkResponse(link=created["link"], sync=SyncResponse.from_result(result))

    @router.delete("/{link_id}", response_model=LinkResponse)
    def delete_link(link_id: str, user: User = Depends(current_user)) -> LinkResponse:
        if not any(link.id == link_id for link in board_app.coordinator.state.links):
            raise HTTPException(status_code=404, detail="Link not found.")

        def apply(state: AppState) -> None:
            remove_link(state, link_id)

        _, result = board_app.coordinator.mutate(apply)
        board_app.tick()
        return LinkResponse(sync=SyncResponse.from_result(result))

    return router
