from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mineru_extract import __version__
from mineru_extract.shared.config import get_settings
from mineru_extract.shared.errors import (
    AppError,
    ERROR_INTERNAL,
    ERROR_VALIDATION,
    error_response,
)
from mineru_extract.shared.logging import configure_logging, get_logger, log_extra
from mineru_extract.shared.request_id import get_request_id, new_request_id, set_request_id

log = get_logger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="MinerU Extract API", version=__version__)

    allow_origins = settings.cors_origin_list()
    if allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID"],
        )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        rid = request.headers.get("X-Request-ID") or new_request_id()
        set_request_id(rid)
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            log.warning(
                "app_error",
                extra=log_extra(code=exc.code, status_code=exc.status_code),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response(get_request_id()),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=error_response(
                code=ERROR_VALIDATION,
                message="request validation failed",
                request_id=get_request_id(),
                details={"errors": jsonable_errors(exc)},
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(
                code=f"http_{exc.status_code}",
                message=exc.detail if isinstance(exc.detail, str) else "http error",
                request_id=get_request_id(),
            ),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        log.exception("unhandled_error")
        return JSONResponse(
            status_code=500,
            content=error_response(
                code=ERROR_INTERNAL,
                message="internal server error",
                request_id=get_request_id(),
                details={"error": str(exc), "type": exc.__class__.__name__},
            ),
        )

    from mineru_extract.interfaces.api.routes.actions import router as actions_router
    from mineru_extract.interfaces.api.routes.health import router as health_router
    from mineru_extract.interfaces.api.routes.mineru import router as mineru_router

    app.include_router(health_router, prefix="/v1")
    app.include_router(actions_router, prefix="/v1")
    app.include_router(mineru_router, prefix="/v1")

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # 上传文件的原始字节不能进 JSON，只保留定位信息
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
