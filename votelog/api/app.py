"""FastAPI application exposing the vote log over HTTP."""

import logging
from datetime import datetime
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field, StrictInt

from ..codec import ENCODING_VERSION
from ..config import Config
from ..errors import InvalidEvent, StoreUnavailable
from ..log import UserLog
from ..sync import read_since

logger = logging.getLogger(__name__)


class VoteIn(BaseModel):
    """Body of ``POST /votes/{userId}``.

    ``thing`` is accepted in place of ``target`` for older clients.
    """

    action: StrictInt
    target: StrictInt = Field(validation_alias=AliasChoices("target", "thing"))


def create_app(config: Config, log: UserLog) -> FastAPI:
    """Create the FastAPI vote log application.

    Args:
        config: Application configuration.
        log: The user log requests read from and append to.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="votelog",
        description="Append-only per-user vote logs with incremental sync",
        version="0.1.0",
    )

    # Store references for route handlers
    app.state.config = config
    app.state.log = log

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable(request: Request, exc: StoreUnavailable):
        logger.error(f"{request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    # Handlers are plain functions so each request runs on the worker
    # thread pool and only blocks on its own store round trip.

    @app.post("/votes/{user_id}", status_code=204)
    def store_vote(user_id: str, vote: VoteIn) -> Response:
        """Append one vote to the user's log."""
        try:
            log.append_event(user_id, vote.action, vote.target)
        except InvalidEvent as e:
            raise HTTPException(status_code=400, detail=str(e))
        return Response(status_code=204)

    @app.get("/votes/{user_id}")
    def get_votes(
        user_id: str,
        sync_id: str | None = Query(default=None, alias="syncId"),
    ) -> dict[str, Any]:
        """Votes appended since ``syncId``, flattened as action/target pairs."""
        try:
            page = read_since(log, user_id, sync_id)
        except InvalidEvent as e:
            raise HTTPException(status_code=400, detail=str(e))
        return page.to_response()

    @app.get("/api/health")
    def api_health() -> dict[str, Any]:
        """Health check endpoint.

        Always returns 200 OK; ``status`` is "degraded" when the store
        does not answer.
        """
        store_ok = log.store.ping()
        return {
            "status": "ok" if store_ok else "degraded",
            "timestamp": datetime.now().isoformat(),
            "store": store_ok,
            "backend": log.store.name,
            "encoding": ENCODING_VERSION,
        }

    return app
