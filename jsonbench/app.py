from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jsonbench.application import reset_job_state
from jsonbench.core import config
from jsonbench.core.logging_setup import configure_logging
from jsonbench.routes import jobs


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    reset_job_state()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="JSON Decode Benchmark API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(jobs.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "JSON Decode Benchmark API",
                "docs": "/docs",
                "health": "/api/jobs/status",
            }
        )

    return app


app = create_app()
