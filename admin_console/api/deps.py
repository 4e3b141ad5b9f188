from fastapi import Depends, Request

from ..access_keys import AccessKeyDirectory
from ..security import SecurityOverview
from ..services.notifier import NoticeBoard
from ..tenants import TenantLifecycleController


def get_notifier(request: Request) -> NoticeBoard:
    """Per-request notice board; the exception handlers read it back"""
    board = NoticeBoard()
    request.state.notifier = board
    return board


def get_tenant_controller(request: Request,
                          notifier: NoticeBoard = Depends(get_notifier)) -> TenantLifecycleController:
    state = request.app.state
    return TenantLifecycleController(state.backend, state.cache, notifier, state.mutations)


def get_access_key_directory(request: Request,
                             notifier: NoticeBoard = Depends(get_notifier)) -> AccessKeyDirectory:
    state = request.app.state
    return AccessKeyDirectory(state.backend, state.cache, notifier, state.mutations)


def get_security_overview(request: Request,
                          notifier: NoticeBoard = Depends(get_notifier)) -> SecurityOverview:
    return SecurityOverview(request.app.state.cache, notifier)
