"""
Distance Matrix proxy relay
Forwards one origin/destination pair to the provider with the server-held key
"""

import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from commutecalc import __version__
from commutecalc.config.models import AppConfig, RelayConfig
from commutecalc.distance.client import DistanceClientError, DistanceMatrixClient
from commutecalc.distance.models import RelayRequest

logger = logging.getLogger(__name__)


def check_origin(request: Request, relay_config: RelayConfig) -> None:
    """
    Reject callers outside the allow-list

    Raises:
        HTTPException: 403 if the Origin header is not allowed
    """
    origin = request.headers.get("origin")

    if origin is None:
        if relay_config.require_origin:
            raise HTTPException(status_code=403, detail="Origin header required")
        return

    if origin.rstrip("/") not in relay_config.allowed_origins:
        logger.warning(f"Rejected relay request from origin {origin}")
        raise HTTPException(status_code=403, detail=f"Origin not allowed: {origin}")


def create_app(
    config: Optional[AppConfig] = None,
    client: Optional[DistanceMatrixClient] = None,
) -> FastAPI:
    """
    Build the relay application

    Args:
        config: Application config (defaults to built-in settings)
        client: Distance Matrix client (built from config and environment if omitted)

    Raises:
        ValueError: If no client is given and the API key is not set
    """
    config = config or AppConfig()
    client = client or DistanceMatrixClient.from_config(config.provider)

    app = FastAPI(title="CommuteCalc Distance Relay", version=__version__)
    app.state.config = config
    app.state.client = client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.relay.allowed_origins,
        allow_methods=["POST"],
        allow_headers=["Content-Type"],
    )

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": "commutecalc-relay"}

    def allowed_origin(request: Request) -> None:
        check_origin(request, config.relay)

    @app.post("/{path:path}", dependencies=[Depends(allowed_origin)])
    async def relay(payload: RelayRequest):
        """Relay one Distance Matrix lookup and return the provider body as-is"""
        logger.info(f"Relaying {payload.origin.as_param()} -> {payload.dest.as_param()}")

        try:
            data = await app.state.client.fetch_matrix(payload.origin, payload.dest)
        except DistanceClientError as e:
            logger.error(f"Upstream distance request failed: {e}")
            return JSONResponse(status_code=502, content={"error": str(e)})

        return JSONResponse(content=data)

    return app
