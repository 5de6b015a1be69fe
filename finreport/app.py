import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from finreport.application import build_report_service, configure_report_service
from finreport.core.settings import get_settings
from finreport.infrastructure import BackendClient, GeminiClient, configure_llm_client
from finreport.routes import reports

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    gemini: GeminiClient | None = None
    if settings.gemini_api_key:
        gemini = GeminiClient(
            settings.gemini_api_key,
            model=settings.gemini_model,
            api_base=settings.gemini_api_base,
            temperature=settings.gemini_temperature,
            timeout=settings.gemini_timeout,
        )
        configure_llm_client(gemini)
        logger.info("Table analyses use Gemini model %s", gemini.model_name)
    else:
        logger.warning("GEMINI_API_KEY is not set, table analyses will use fallback content")

    backend = BackendClient(settings.backend_api_base, timeout=settings.backend_timeout)
    configure_report_service(build_report_service(settings, backend=backend))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await backend.aclose()
        if gemini is not None:
            await gemini.aclose()
        logger.info("HTTP clients closed")

    app = FastAPI(title="Finaxial Financial Report API", version="0.1.0", lifespan=lifespan)
    app.state.backend = backend
    app.state.gemini = gemini

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(reports.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Finaxial Financial Report API",
                "docs": "/docs",
            }
        )

    return app


app = create_app()
