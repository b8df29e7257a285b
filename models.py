"""
Pydantic models for the relay API request/response bodies.

Field presence is checked by the gateway rather than here, so a body with a
missing field still parses and the caller gets the relay's own error message.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """A point in WGS84 degrees."""

    lon: float = Field(..., description="Longitude in degrees")
    lat: float = Field(..., description="Latitude in degrees")

    def as_pair(self) -> List[float]:
        """Provider order: longitude first."""
        return [self.lon, self.lat]


class GeocodeRequest(BaseModel):
    """Request body for address lookup."""

    address: Optional[str] = Field(default=None, description="Free-form address to search for")

    model_config = ConfigDict(
        json_schema_extra={"example": {"address": "Brandenburger Tor, Berlin"}}
    )


class OptimizationRequest(BaseModel):
    """Request body for stop-order optimization."""

    coordinates: Optional[List[Coordinate]] = Field(
        default=None,
        description="Stops to visit, each becomes one job"
    )
    start_point: Optional[Coordinate] = Field(
        default=None,
        alias="startPoint",
        description="Vehicle start, defaults to the first stop"
    )
    end_point: Optional[Coordinate] = Field(
        default=None,
        alias="endPoint",
        description="Vehicle end, defaults to the first stop"
    )

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "coordinates": [
                    {"lon": 8.681495, "lat": 49.41461},
                    {"lon": 8.686507, "lat": 49.41943}
                ],
                "startPoint": {"lon": 8.681495, "lat": 49.41461}
            }
        }
    )


class RouteRequest(BaseModel):
    """Request body for route geometry."""

    coordinates: Optional[List[Coordinate]] = Field(
        default=None,
        description="Waypoints in travel order"
    )


class ErrorResponse(BaseModel):
    error: str
