import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gymhub.core.config import settings
from gymhub.core.errors import AuthzError
from gymhub.core.logging import configure_logging
import gymhub.models  # noqa: F401  # force model registration

from gymhub.api.v1.gym import router as gym_router
from gymhub.api.v1.me import router as me_router

log = structlog.get_logger()


async def authz_error_handler(request: Request, exc: AuthzError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


def create_application() -> FastAPI:
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    app = FastAPI(title="Gymhub API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Guard denials render as {"message": ...} with their own status code.
    app.add_exception_handler(AuthzError, authz_error_handler)

    @app.get("/")
    def root():
        return {"status": "ok", "service": "gymhub"}

    # Routers
    app.include_router(me_router, prefix="/api/v1")
    app.include_router(gym_router, prefix="/api/v1")

    log.info("app.created", environment=settings.ENVIRONMENT)
    return app


app = create_application()
