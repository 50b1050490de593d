"""API server for ``tokenhub serve``.

Builds the FastAPI application: CORS, the bearer-token gate, the
TokenHubError handlers and every ``/api/v1/`` router.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def _flatten_validation_errors(errors: list[dict]) -> dict[str, list[str]]:
    fields: dict[str, list[str]] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        fields.setdefault(".".join(loc) or "body", []).append(err.get("msg", "Invalid value"))
    return fields


def register_error_handlers(app) -> None:
    """Render TokenHubError (and request-body validation) as error envelopes."""
    from fastapi import Request
    from fastapi.exceptions import RequestValidationError
    from fastapi.responses import JSONResponse

    from tokenhub.errors import StoreError, TokenHubError, ValidationError

    @app.exception_handler(TokenHubError)
    async def _tokenhub_error(request: Request, exc: TokenHubError):
        if isinstance(exc, StoreError):
            logger.error(
                "Store failure on %s %s: %s", request.method, request.url.path, exc.detail
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        error = ValidationError(_flatten_validation_errors(exc.errors()))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_api_app():
    """Build the FastAPI application with all v1 routers."""
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware

    from tokenhub import __version__
    from tokenhub.api.gate import token_gate_middleware
    from tokenhub.api.v1 import mount_v1_routers
    from tokenhub.config import get_settings

    app = FastAPI(
        title="TokenHub API",
        description="Application credentials and bearer tokens.",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    # --- CORS -----------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().api_cors_allowed_origins,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    # --- Bearer-token gate ----------------------------------------------
    app.middleware("http")(token_gate_middleware)

    register_error_handlers(app)

    # --- Mount all /api/v1/ routers -------------------------------------
    mount_v1_routers(app)

    return app


def run_api_server(
    host: str = "127.0.0.1",
    port: int = 8890,
    dev: bool = False,
) -> None:
    """Start the API server with uvicorn."""
    import uvicorn
    from rich.console import Console

    console = Console()
    console.rule("[bold]TokenHub API server")
    shown_host = "localhost" if host == "127.0.0.1" else host
    console.print(f"API docs: http://{shown_host}:{port}/api/v1/docs")

    if dev:
        import pathlib

        src_dir = str(pathlib.Path(__file__).resolve().parent.parent)
        uvicorn.run(
            "tokenhub.api.serve:create_api_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            reload_dirs=[src_dir],
            reload_includes=["*.py"],
            log_level="debug",
        )
    else:
        app = create_api_app()
        uvicorn.run(app, host=host, port=port)
