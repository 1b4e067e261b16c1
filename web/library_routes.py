"""
Library Routes - saved searches and favorite listings

Client-local persistence exposed over JSON. Repositories live on
app.state (see web.app.create_app) so tests can inject their own store.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from core.local_store import FavoritesRepository, SavedSearchRepository
from web.schemas import FavoriteRequest, SaveSearchRequest


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/api/library", tags=["library"])


def _searches(request: Request) -> SavedSearchRepository:
    return request.app.state.saved_searches


def _favorites(request: Request) -> FavoritesRepository:
    return request.app.state.favorites


# =============================================================================
# Saved Searches
# =============================================================================


@router.get("/searches")
async def list_searches(request: Request):
    repo = _searches(request)
    return {
        "searches": [s.to_dict() for s in repo.list()],
        "last_id": repo.last_id(),
    }


@router.post("/searches")
async def save_search(request: Request, body: SaveSearchRequest):
    """
    Save the current search.

    Overwrites the selected search, else one with the same name, else
    creates a new entry.
    """
    saved = _searches(request).save(
        body.name,
        query=body.query,
        criteria=body.filters.to_criteria(),
        selected_id=body.selected_id,
    )
    return saved.to_dict()


@router.get("/searches/last")
async def last_search(request: Request):
    """The search to auto-restore on load."""
    saved = _searches(request).restore_last()
    if saved is None:
        raise HTTPException(status_code=404, detail="No saved search to restore")
    return saved.to_dict()


@router.get("/searches/{search_id}")
async def get_search(request: Request, search_id: str):
    repo = _searches(request)
    saved = repo.get(search_id)
    if saved is None:
        raise HTTPException(status_code=404, detail=f"Saved search {search_id} not found")
    repo.set_last_id(saved.id)
    return saved.to_dict()


@router.delete("/searches/{search_id}")
async def delete_search(request: Request, search_id: str):
    if not _searches(request).delete(search_id):
        raise HTTPException(status_code=404, detail=f"Saved search {search_id} not found")
    return {"deleted": search_id}


# =============================================================================
# Favorites
# =============================================================================


def _favorite_payload(favorite) -> dict:
    return {"listing_id": favorite.listing_id, **favorite.to_dict()}


@router.get("/favorites")
async def list_favorites(request: Request):
    return {"favorites": [_favorite_payload(f) for f in _favorites(request).all()]}


@router.put("/favorites/{listing_id}")
async def save_favorite(request: Request, listing_id: str, body: FavoriteRequest):
    return _favorite_payload(_favorites(request).save(listing_id, body.tags))


@router.patch("/favorites/{listing_id}/tags")
async def set_favorite_tags(request: Request, listing_id: str, body: FavoriteRequest):
    favorite = _favorites(request).set_tags(listing_id, body.tags)
    if favorite is None:
        raise HTTPException(status_code=404, detail=f"Listing {listing_id} is not a favorite")
    return _favorite_payload(favorite)


@router.post("/favorites/{listing_id}/toggle")
async def toggle_favorite(request: Request, listing_id: str):
    return {"listing_id": listing_id, "is_favorite": _favorites(request).toggle(listing_id)}


@router.delete("/favorites/{listing_id}")
async def remove_favorite(request: Request, listing_id: str):
    if not _favorites(request).remove(listing_id):
        raise HTTPException(status_code=404, detail=f"Listing {listing_id} is not a favorite")
    return {"deleted": listing_id}
