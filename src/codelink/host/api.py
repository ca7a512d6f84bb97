"""FastAPI app for the local control API.

- /health: liveness check
- /v1/live-context/*: the session controller's operations plus export
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from fastapi import FastAPI

from codelink import __version__
from codelink.common.models import ControlResponse, EngineStatus, ExportRequest, InitRequest
from codelink.core.errors import CodeLinkError
from codelink.core.live_context import SessionController


def error_response(error: CodeLinkError) -> ControlResponse:
    kind = error.kind if error.kind in ("access_denied", "cancelled", "not_found", "unavailable") else "error"
    return ControlResponse(success=False, error=str(error), kind=kind)


def create_app(
    controller: SessionController,
    default_export_path: Optional[Callable[[], Path]] = None,
) -> FastAPI:
    app = FastAPI(title="CodeLink Control API", version=__version__)

    @app.get("/health")
    def health() -> dict:
        return {"ok": True}

    @app.get("/v1/live-context/status", response_model=EngineStatus)
    def status() -> EngineStatus:
        return controller.check_status()

    @app.post("/v1/live-context/init", response_model=ControlResponse)
    async def init(payload: Optional[InitRequest] = None) -> ControlResponse:
        if controller.is_initialized:
            return ControlResponse(success=False, error="Live context already initialized")
        project_root = payload.project_root if payload else None
        if await controller.init(project_root):
            project = controller.check_status().project
            return ControlResponse(success=True, message=f"Live context started for {project}")
        if controller.last_error is not None:
            return error_response(controller.last_error)
        return ControlResponse(success=False, error="Live context already initialized")

    @app.post("/v1/live-context/structure", response_model=ControlResponse)
    async def structure() -> ControlResponse:
        if not controller.is_initialized:
            return ControlResponse(success=False, error="Live context is not initialized", kind="error")
        if await controller.send_project_structure():
            return ControlResponse(success=True, message="Project structure sent")
        return ControlResponse(success=False, error="Could not write to the composer", kind="unavailable")

    @app.post("/v1/live-context/stop", response_model=ControlResponse)
    async def stop() -> ControlResponse:
        await controller.stop()
        return ControlResponse(success=True, message="Live context stopped")

    @app.post("/v1/live-context/export", response_model=ControlResponse)
    async def export(payload: Optional[ExportRequest] = None) -> ControlResponse:
        destination = payload.destination if payload else None
        if not destination:
            if default_export_path is None:
                return ControlResponse(success=False, error="No export destination given", kind="error")
            destination = str(default_export_path())
        try:
            path = await controller.export(destination)
        except CodeLinkError as e:
            return error_response(e)
        except OSError as e:
            return ControlResponse(success=False, error=f"Failed to save context file: {e}", kind="error")
        return ControlResponse(success=True, message=str(path))

    return app
