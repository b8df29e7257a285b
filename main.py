"""
FastAPI application relaying map requests to OpenRouteService.

This module implements REST API endpoints for:
- Health check (ping)
- Address geocoding
- Stop order optimization
- Route geometry (GeoJSON)

The provider API key stays on the server; the browser only ever talks to
these endpoints. Static frontend assets are served from the configured
directory when it exists.

Example usage:
    OPENROUTESERVICE_API_KEY=... python main.py
    curl -X POST http://localhost:3000/api/geocode -H "Content-Type: application/json" \
        -d '{"address": "Heidelberg"}'
"""

import logging
import os
import sys
from typing import Optional

import pydantic
import requests
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from config import Settings, load_settings
from errors import RelayError
from logging_setup import LOGGER_NAME, configure_logging
from models import ErrorResponse, GeocodeRequest, OptimizationRequest, RouteRequest
from relay_service import RelayGateway

logger = logging.getLogger(LOGGER_NAME)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or malformed request field"},
    500: {"model": ErrorResponse, "description": "Provider call failed"},
}


def create_app(settings: Settings, session: Optional[requests.Session] = None) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Loaded settings, must hold the provider API key
        session: Optional HTTP session for outbound calls

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    gateway = RelayGateway(settings, session)
    app.state.gateway = gateway
    app.add_event_handler("shutdown", gateway.close)

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = exc.errors()
        malformed_json = any(err.get("type") == "json_invalid" for err in details)
        message = "Malformed JSON request body" if malformed_json else "Invalid request body"
        return JSONResponse(status_code=400, content={"error": message})

    @app.get(
        "/ping",
        tags=["Health"],
        summary="Health check endpoint",
        description="Simple endpoint to verify API is running"
    )
    async def ping() -> JSONResponse:
        """
        Health check endpoint.

        Example:
            GET /ping
            Response: {"status": "ok", "message": "API is running"}
        """
        return JSONResponse(
            status_code=200,
            content={"status": "ok", "message": "API is running"}
        )

    @app.post(
        "/api/geocode",
        tags=["Relay"],
        summary="Geocode an address",
        responses=ERROR_RESPONSES
    )
    async def geocode(request: GeocodeRequest):
        """
        Search the provider for an address and return its GeoJSON feature collection.

        Example request:
            {"address": "Bismarckplatz, Heidelberg"}
        """
        return await gateway.geocode(request.address)

    @app.post(
        "/api/optimize",
        tags=["Relay"],
        summary="Optimize stop order",
        responses=ERROR_RESPONSES
    )
    async def optimize(request: OptimizationRequest):
        """
        Send the stops to the provider's optimization endpoint as jobs for a
        single driving vehicle.

        Without startPoint/endPoint the vehicle starts and ends at the first stop.

        Example request:
            {
                "coordinates": [{"lon": 8.68, "lat": 49.41}, {"lon": 8.69, "lat": 49.42}],
                "startPoint": {"lon": 8.67, "lat": 49.40}
            }
        """
        return await gateway.optimize(
            request.coordinates,
            start_point=request.start_point,
            end_point=request.end_point
        )

    @app.post(
        "/api/route",
        tags=["Relay"],
        summary="Get route geometry",
        responses=ERROR_RESPONSES
    )
    async def route(request: RouteRequest):
        """Return the provider's driving directions through the waypoints as GeoJSON."""
        return await gateway.route(request.coordinates)

    if os.path.isdir(settings.static_dir):
        # Mounted last so the API routes above take precedence.
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")

    return app


def main() -> None:
    """Load settings, refuse to start without an API key, then serve."""
    try:
        settings = load_settings()
    except pydantic.ValidationError as exc:
        configure_logging()
        if any("openrouteservice_api_key" in err["loc"] for err in exc.errors()):
            logger.error("ERROR: OPENROUTESERVICE_API_KEY not found in environment variables")
        else:
            logger.error(f"ERROR: invalid configuration: {exc}")
        sys.exit(1)

    configure_logging(settings.log_level)
    app = create_app(settings)

    logger.info(f"Server running on port {settings.port}", extra={"port": settings.port})
    logger.info(f"OpenRouteService API key loaded: {settings.masked_api_key}")

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
