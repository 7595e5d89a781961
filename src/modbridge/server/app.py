"""FastAPI application exposing the bridge on localhost."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from modbridge import __version__
from modbridge.core.exceptions import RequestValidationError
from modbridge.core.installer import InstallOrchestrator
from modbridge.core.instances import build_status_report
from modbridge.core.models import (
    ArchiveInstallRequest,
    BridgeConfig,
    DeviceIdentity,
    InstallRequest,
    InstallResult,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _no_exit_hook() -> None:
    logger.warning("Auto-terminate requested but no exit hook is installed")


async def _terminate_later(app: FastAPI, delay: float) -> None:
    """Ask the host process to exit once the response has been sent."""
    await asyncio.sleep(delay)
    logger.info("Auto-terminate requested, shutting down")
    app.state.request_exit()


def _reply(
    request: Request,
    result: InstallResult,
    auto_terminate: bool,
    background_tasks: BackgroundTasks,
) -> JSONResponse:
    if not result.success:
        return JSONResponse(status_code=500, content=result.to_response())
    if auto_terminate:
        config: BridgeConfig = request.app.state.config
        background_tasks.add_task(
            _terminate_later, request.app, config.terminate_delay
        )
    return JSONResponse(content=result.to_response())


def _client_error(error: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400, content={"success": False, "error": str(error)}
    )


@router.get("/status")
async def status(request: Request) -> dict[str, Any]:
    """Report bridge version, device token and discovered instances."""
    orchestrator: InstallOrchestrator = request.app.state.orchestrator
    report = build_status_report(orchestrator.locator, request.app.state.identity)
    return report.model_dump(mode="json", by_alias=True)


@router.post("/install")
async def install_archive(
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Any = Body(default=None),
) -> JSONResponse:
    """Install a whole modpack archive into .minecraft."""
    try:
        install_request = ArchiveInstallRequest.from_payload(payload)
    except RequestValidationError as e:
        return _client_error(e)

    orchestrator: InstallOrchestrator = request.app.state.orchestrator
    result = await orchestrator.install_archive(install_request)
    return _reply(request, result, install_request.auto_terminate, background_tasks)


@router.post("/install-files")
async def install_files(
    request: Request,
    background_tasks: BackgroundTasks,
    payload: Any = Body(default=None),
) -> JSONResponse:
    """Install individual mods, resource packs and config files."""
    orchestrator: InstallOrchestrator = request.app.state.orchestrator
    try:
        install_request = InstallRequest.from_payload(payload)
        result = await orchestrator.install_files(install_request)
    except RequestValidationError as e:
        return _client_error(e)

    return _reply(request, result, install_request.auto_terminate, background_tasks)


def create_app(
    config: BridgeConfig,
    identity: DeviceIdentity,
    orchestrator: InstallOrchestrator | None = None,
    request_exit: Callable[[], None] | None = None,
) -> FastAPI:
    """Build the bridge application.

    Args:
        config: Application configuration
        identity: This device's identity
        orchestrator: Optional orchestrator for dependency injection
        request_exit: Called when a client asks the bridge to terminate

    Returns:
        FastAPI application
    """
    orchestrator = orchestrator or InstallOrchestrator(config=config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with orchestrator:
            yield

    app = FastAPI(title="Modpack Bridge", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.identity = identity
    app.state.orchestrator = orchestrator
    app.state.request_exit = request_exit or _no_exit_hook

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
