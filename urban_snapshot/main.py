import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.errors import InvalidQuery
from .routers import aggregate
from .services.aggregator import Aggregator, default_clients
from .services.cache import SnapshotCache

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def invalid_query_handler(request: Request, exc: InvalidQuery):
    logger.info("Rejected query %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=500,
        content={"error": "Failed to fetch aggregate data", "message": str(exc)},
    )


def create_app(aggregator: Optional[Aggregator] = None, cache: Optional[SnapshotCache] = None) -> FastAPI:
    app = FastAPI(title=settings.app_name)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.aggregator = aggregator if aggregator is not None else Aggregator(default_clients())
    app.state.cache = cache if cache is not None else SnapshotCache()
    app.add_exception_handler(InvalidQuery, invalid_query_handler)
    app.include_router(aggregate.router)

    @app.get("/")
    def root():
        base = settings.public_base_url.rstrip("/")
        return {
            "name": settings.app_name,
            "env": settings.app_env,
            "message": "OK",
            "sources": app.state.aggregator.source_ids,
            "endpoints": {
                "aggregate": f"{base}/aggregate",
                "sources": f"{base}/sources/{{source_id}}",
                "estimate": f"{base}/estimate/{{quantity}}",
            },
        }

    logger.info("%s started (%s), sources: %s", settings.app_name, settings.app_env,
                ", ".join(app.state.aggregator.source_ids))
    return app


app = create_app()
