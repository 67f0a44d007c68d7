"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime
from schemas.property import PropertyResponse, PropertySummary


class CamelModel(BaseModel):
    """Response models serialize with camelCase keys for the dashboard"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# ETL Job Schemas
# ============================================================================

class RunStats(CamelModel):
    """Counters of one pipeline execution"""
    processed: int = 0
    saved: int = 0
    errors: int = 0


class TriggerJobResponse(CamelModel):
    """Result of a manual ETL trigger; partial progress is always reported"""
    success: bool
    message: str
    processed_count: int
    data: RunStats

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "success": True,
                "message": "ETL job completed",
                "processedCount": 250,
                "data": {"processed": 250, "saved": 250, "errors": 0}
            }
        }
    )


class JobStatusResponse(CamelModel):
    """Store freshness plus scheduler state"""
    last_update_date: Optional[datetime] = None
    total_properties: int = 0
    last_run: Optional[datetime] = None
    last_success: Optional[datetime] = None
    last_result: Optional[RunStats] = None
    next_scheduled_run: Optional[datetime] = None
    is_running: bool = False


class RecentPropertiesResponse(CamelModel):
    properties: List[PropertyResponse] = Field(default_factory=list)
    count: int = 0


class PropertyListResponse(CamelModel):
    """One page of a filtered listing search; total counts every match"""
    properties: List[PropertyResponse] = Field(default_factory=list)
    total: int = 0
    limit: int
    offset: int


# ============================================================================
# Long-poll Schemas
# ============================================================================

class UpdatesData(CamelModel):
    status: str = "active"
    total_properties: int
    last_updated: Optional[datetime] = None
    properties: List[PropertySummary] = Field(default_factory=list)


class UpdatesResponse(CamelModel):
    """``data`` is null when the wait timed out without a detectable change"""
    timestamp: int = Field(..., description="Server time in epoch milliseconds")
    data: Optional[UpdatesData] = None


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(CamelModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime
    database_connected: bool
    scheduler_running: bool = False
    total_properties: Optional[int] = None

    @model_validator(mode="after")
    def determine_status(self):
        """Database down is unhealthy; a stopped scheduler only degrades"""
        if not self.database_connected:
            self.status = "unhealthy"
        elif not self.scheduler_running:
            self.status = "degraded"
        else:
            self.status = "healthy"
        return self
