import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ytmirror.core.settings import settings
from ytmirror.core.errors import AppError
import ytmirror.core.logging  # noqa: F401  configures logging on import
import ytmirror.models  # noqa: F401  registers tables on Base.metadata
from ytmirror.api.router import router
from ytmirror.db.session import engine
from ytmirror.db.base import Base

logger = logging.getLogger(__name__)

app = FastAPI(title="YouTube Metadata Mirror", version="0.1.0")

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}",
        extra={"extra_fields": {"code": exc.code, "status_code": exc.status_code}},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


Base.metadata.create_all(bind=engine)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting YouTube Metadata Mirror ({settings.app_env}) on {settings.app_host}:{settings.app_port}")
    uvicorn.run(app, host=settings.app_host, port=settings.app_port)
