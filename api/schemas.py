"""
Pydantic schemas for the reports API
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from d1_design.models import DataSet, DataSource, LayoutElement


class DesignCreateRequest(BaseModel):
    """Request schema for storing a design"""

    name: str = Field("report", min_length=1, description="Design name")
    data_sources: List[DataSource] = Field(default_factory=list)
    data_sets: List[DataSet] = Field(default_factory=list)
    body: List[LayoutElement] = Field(default_factory=list, description="Ordered layout elements")


class DesignCreateResponse(BaseModel):
    design_ref: str = Field(..., description="Reference used to render the design")
    name: str


class DesignSummary(BaseModel):
    design_ref: str
    name: str
    data_sources: List[str]
    tables: List[str]
    updated_at: str


class RenderOptionsRequest(BaseModel):
    """Page setup; omitted fields use the configured defaults"""

    output_format: Optional[Literal["pdf", "html"]] = None
    page_size: Optional[Literal["A4", "LETTER", "LEGAL"]] = None
    landscape: Optional[bool] = None
    margin_top: Optional[float] = Field(None, ge=0)
    margin_bottom: Optional[float] = Field(None, ge=0)
    margin_left: Optional[float] = Field(None, ge=0)
    margin_right: Optional[float] = Field(None, ge=0)
    font_size: Optional[float] = Field(None, gt=0)
    line_height: Optional[float] = Field(None, gt=0)
    title: Optional[str] = None


class GenerateRequest(BaseModel):
    """Request schema for rendering a stored design"""

    design_ref: str = Field(..., min_length=1)
    options: RenderOptionsRequest = Field(default_factory=RenderOptionsRequest)
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Runtime query parameters")


class HealthResponse(BaseModel):
    status: str
    app: str
    version: str
    environment: str
    designs_dir: str
    engines: int
