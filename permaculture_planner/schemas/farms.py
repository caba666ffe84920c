"""
Schemas for farms and their map features.

Geometries are GeoJSON objects; the boundary may also be sent as a JSON string.
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

GOAL_TIMELINES = ("short", "medium", "long")


class FarmCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Farm name")
    description: Optional[str] = None
    boundary_geometry: Union[Dict[str, Any], str] = Field(..., description="GeoJSON Polygon of the farm boundary")
    acres: Optional[float] = Field(None, ge=0)
    climate_zone: Optional[str] = None
    rainfall_inches: Optional[float] = Field(None, ge=0)
    soil_type: Optional[str] = None
    is_public: bool = False


class FarmUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    climate_zone: Optional[str] = None
    rainfall_inches: Optional[float] = Field(None, ge=0)
    soil_type: Optional[str] = None
    is_public: Optional[bool] = None
    acres: Optional[float] = Field(None, ge=0)


class ZoneFeature(BaseModel):
    """A GeoJSON Feature drawn on the map."""
    id: Optional[str] = None
    geometry: Dict[str, Any]
    properties: Dict[str, Any] = Field(default_factory=dict)


class ZonesUpsert(BaseModel):
    zones: List[ZoneFeature]


class PlantingCreate(BaseModel):
    species_id: str
    lat: float
    lng: float
    zone_id: Optional[str] = None
    planted_year: Optional[int] = None
    current_year: Optional[int] = None
    name: Optional[str] = None
    notes: Optional[str] = None
    layer_id: Optional[str] = None


class PlantingUpdate(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None
    zone_id: Optional[str] = None
    planted_year: Optional[int] = None
    current_year: Optional[int] = None
    name: Optional[str] = None
    notes: Optional[str] = None
    layer_id: Optional[str] = None


class LineCreate(BaseModel):
    geometry: Dict[str, Any] = Field(..., description="GeoJSON LineString")
    line_type: str = "custom"
    label: Optional[str] = None
    layer_id: Optional[str] = None
    style: Optional[Dict[str, Any]] = None

    @field_validator("geometry")
    @classmethod
    def check_line(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        if value.get("type") != "LineString":
            raise ValueError("Line geometry must be a LineString")
        return value


class LineUpdate(BaseModel):
    label: Optional[str] = None
    line_type: Optional[str] = None
    geometry: Optional[Dict[str, Any]] = None
    style: Optional[Dict[str, Any]] = None
    layer_id: Optional[str] = None


class LayerCreate(BaseModel):
    name: str = Field(..., min_length=1)
    color: Optional[str] = None
    description: Optional[str] = None
    visible: bool = True
    locked: bool = False


class LayerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    color: Optional[str] = None
    description: Optional[str] = None
    visible: Optional[bool] = None
    locked: Optional[bool] = None
    display_order: Optional[int] = None


class PhaseCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    color: str = "#3b82f6"

    @model_validator(mode="after")
    def check_years(self):
        if self.start_year is not None and self.end_year is not None and self.start_year > self.end_year:
            raise ValueError("start_year must not be after end_year")
        return self


class PhaseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    color: Optional[str] = None
    display_order: Optional[int] = None


class GoalCreate(BaseModel):
    goal_category: str = Field(..., min_length=1)
    description: Optional[str] = None
    priority: int = Field(3, ge=1, le=5)
    targets: List[Any] = Field(default_factory=list)
    timeline: str = "medium"

    @field_validator("timeline")
    @classmethod
    def check_timeline(cls, value: str) -> str:
        if value not in GOAL_TIMELINES:
            raise ValueError("timeline must be short, medium or long")
        return value


class GuildCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    planting_ids: List[str] = Field(default_factory=list)


class CatchmentRequest(BaseModel):
    zone_id: str
    rainfall_inches: Optional[float] = Field(None, ge=0)
    runoff_coefficient: Optional[float] = Field(None, ge=0, le=1)
    destination_feature_id: Optional[str] = None


class SwaleRequest(BaseModel):
    zone_id: str
    cross_section_width_feet: float = Field(..., gt=0)
    cross_section_depth_feet: float = Field(..., gt=0)
    overflow_destination_id: Optional[str] = None
