"""
Control Surface API

Exposes the finding store and the toggles to UI consumers over HTTP. The
three operations of the original message protocol (getFoundItems,
removeItem, clearAll) are available both as REST routes and through
POST /message with {"action": ...}.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ghostleak import __version__
from ghostleak.errors import ErrorCode, GhostleakError, handle_error
from ghostleak.runtime import GhostleakRuntime

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response Models
class FoundItemsResponse(BaseModel):
    foundItems: List[Dict[str, Any]]


class SuccessResponse(BaseModel):
    success: bool


class MessageRequest(BaseModel):
    """Message protocol envelope, as sent by the results popup."""
    action: str
    itemId: Optional[int] = None


class SettingsModel(BaseModel):
    extensionEnabled: bool
    gitCheckEnabled: bool
    envCheckEnabled: bool


class SettingsPatch(BaseModel):
    extensionEnabled: Optional[bool] = None
    gitCheckEnabled: Optional[bool] = None
    envCheckEnabled: Optional[bool] = None


class BadgeResponse(BaseModel):
    text: str
    color: str


class StatusResponse(BaseModel):
    version: str
    findings: int
    checked_targets: int
    in_flight: List[str]


def get_runtime(request: Request) -> GhostleakRuntime:
    return request.app.state.runtime


@router.get("/ping")
async def ping() -> Dict[str, str]:
    return {"status": "ok"}


@router.get("/status", response_model=StatusResponse)
async def status(runtime: GhostleakRuntime = Depends(get_runtime)):
    return StatusResponse(
        version=__version__,
        findings=len(runtime.findings),
        checked_targets=len(runtime.dedup),
        in_flight=[key for key, _ in runtime.context.locks.held()],
    )


@router.get("/items", response_model=FoundItemsResponse)
async def get_found_items(runtime: GhostleakRuntime = Depends(get_runtime)):
    return FoundItemsResponse(foundItems=runtime.get_found_items())


@router.delete("/items/{item_id}", response_model=SuccessResponse)
async def remove_item(item_id: int, runtime: GhostleakRuntime = Depends(get_runtime)):
    removed = await runtime.remove_item(item_id)
    return SuccessResponse(success=removed)


@router.post("/items/clear", response_model=SuccessResponse)
async def clear_all(runtime: GhostleakRuntime = Depends(get_runtime)):
    await runtime.clear_all()
    return SuccessResponse(success=True)


@router.post("/message")
async def message(body: MessageRequest, runtime: GhostleakRuntime = Depends(get_runtime)):
    if body.action == "getFoundItems":
        return {"foundItems": runtime.get_found_items()}
    if body.action == "removeItem":
        if body.itemId is None:
            return {"success": False}
        return {"success": await runtime.remove_item(body.itemId)}
    if body.action == "clearAll":
        await runtime.clear_all()
        return {"success": True}
    raise GhostleakError(
        ErrorCode.ACTION_UNKNOWN,
        f"Unknown action: {body.action}",
        details={"action": body.action},
    )


@router.get("/settings", response_model=SettingsModel)
async def get_settings(runtime: GhostleakRuntime = Depends(get_runtime)):
    return SettingsModel(**runtime.settings.snapshot().to_dict())


@router.patch("/settings", response_model=SettingsModel)
async def patch_settings(body: SettingsPatch, runtime: GhostleakRuntime = Depends(get_runtime)):
    snapshot = await runtime.settings.update(
        enabled=body.extensionEnabled,
        git_enabled=body.gitCheckEnabled,
        env_enabled=body.envCheckEnabled,
    )
    return SettingsModel(**snapshot.to_dict())


@router.get("/badge", response_model=BadgeResponse)
async def badge(runtime: GhostleakRuntime = Depends(get_runtime)):
    current = runtime.alerts.current_badge()
    return BadgeResponse(text=current.text, color=current.color)


@router.get("/notifications")
async def notifications(runtime: GhostleakRuntime = Depends(get_runtime)):
    return {"notifications": [n.to_dict() for n in runtime.alerts.recent_notifications()]}


async def _ghostleak_error_handler(request: Request, exc: GhostleakError) -> JSONResponse:
    logger.warning(f"[API] {request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.http_status, content={"error": exc.to_dict()})


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = handle_error(exc, context=f"{request.method} {request.url.path}")
    logger.error(f"[API] {error}", exc_info=exc)
    return JSONResponse(status_code=error.http_status, content={"error": error.to_dict()})


def create_app(runtime: GhostleakRuntime, manage_runtime: bool = True) -> FastAPI:
    """
    Build the control API around a runtime.

    With manage_runtime the app's lifespan initializes and shuts down the
    runtime; the serve command passes False because it owns the runtime itself.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if manage_runtime:
            await runtime.initialize()
        yield
        if manage_runtime:
            await runtime.shutdown()

    app = FastAPI(title="Ghostleak Control API", version=__version__, lifespan=lifespan)
    app.state.runtime = runtime
    app.add_exception_handler(GhostleakError, _ghostleak_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)
    app.include_router(router)
    return app
