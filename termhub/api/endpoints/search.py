"""Search endpoint"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from termhub.core.database import get_db
from termhub.dependencies.auth import get_current_user
from termhub.models.user import User
from termhub.schemas.search import SearchEnvelope
from termhub.services.search_service import SearchService

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=SearchEnvelope)
async def search(
    term: str = Query(""),
    type: str = Query("projects"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db),
) -> SearchEnvelope:
    """Search projects, users, tags or activity by a case-insensitive substring."""
    results = await SearchService.search(session, term, type)
    return SearchEnvelope(term=term.strip(), type=type, results=results)
