"""
Access key directory endpoints
"""
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from ..access_keys import SORT_FIELDS, AccessKeyDirectory
from ..config import API_PREFIX
from .deps import get_access_key_directory
from .response_builders import build_error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX, tags=["access-keys"])


@router.get("/access-keys")
async def list_access_keys(search: str = "",
                           sort: str = Query("id", description=f"One of {', '.join(SORT_FIELDS)}"),
                           order: str = Query("asc", pattern="^(asc|desc)$"),
                           directory: AccessKeyDirectory = Depends(get_access_key_directory)):
    """All access keys joined to their users"""
    if sort not in SORT_FIELDS:
        raise HTTPException(status_code=400, detail=f"Invalid sort field: {sort}")
    rows = await directory.rows(search, sort_by=sort, descending=(order == "desc"))
    return {
        "keys": [r.to_dict() for r in rows],
        "total": len(rows),
        "notices": directory.notifier.to_list(),
    }


@router.delete("/users/{user_id}/access-keys/{key_id}")
async def delete_access_key(user_id: str, key_id: str,
                            directory: AccessKeyDirectory = Depends(get_access_key_directory)):
    result = await directory.delete_key(user_id, key_id)
    body = result.to_dict()
    body["keys"] = [r.to_dict() for r in directory.cached_rows()]
    body["notices"] = directory.notifier.to_list()
    failure = result.error or result.reconcile_error
    if failure is not None:
        return build_error_response(failure, body["notices"], result=body)
    return body
