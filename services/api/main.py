import os
from pathlib import Path

from fastapi import FastAPI
from loguru import logger

from archive.exceptions import ArchiveError
from archive.logging_config import setup_logging
from services.api.exception_handlers import archive_exception_handler, unhandled_exception_handler
from services.api.middleware import RequestLogMiddleware
from services.api.routes import router


def create_app() -> FastAPI:
    json_logging = os.getenv("JSON_LOGGING", "false").lower() in {"true", "1", "yes"}
    log_level = os.getenv("LOG_LEVEL", "INFO")
    log_file = os.getenv("LOG_FILE")
    setup_logging(
        level=log_level,
        json_format=json_logging,
        log_file=Path(log_file) if log_file else None,
    )

    app = FastAPI(
        title="Exam Archive",
        version="0.1.0",
        description="Upload exams and summaries into the archive bucket",
    )

    app.add_middleware(RequestLogMiddleware)

    @app.get("/healthz", tags=["meta"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    app.add_exception_handler(ArchiveError, archive_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(router)

    logger.debug("Exam archive app created")
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "services.api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
    )


if __name__ == "__main__":
    run()


__all__ = ["app", "create_app", "run"]
