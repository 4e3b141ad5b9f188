from fastapi import APIRouter, Request

from ..config import API_PREFIX, API_VERSION, BACKEND_URL

router = APIRouter(prefix=API_PREFIX, tags=["health"])


@router.get("/health")
async def health(request: Request):
    mutations = request.app.state.mutations
    poll = getattr(request.app.state, "lock_poll", None)
    return {
        "status": "ok",
        "service": "storage-admin-console",
        "version": API_VERSION,
        "backend_url": BACKEND_URL,
        "pending_mutations": mutations.pending,
        "lock_poll": "running" if poll is not None and poll.running else "disabled",
    }
