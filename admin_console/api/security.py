from fastapi import APIRouter, Depends

from ..config import API_PREFIX
from ..security import SecurityOverview
from .deps import get_security_overview

router = APIRouter(prefix=f"{API_PREFIX}/security", tags=["security"])


@router.get("/overview")
async def security_overview(view: SecurityOverview = Depends(get_security_overview)):
    """User status counts, locked accounts and lockout policy"""
    overview = await view.overview()
    overview["notices"] = view.notifier.to_list()
    return overview
