# ==============================================================================
# ADVISORY SCHEMAS - AI Agricultural Advice
# ==============================================================================

from __future__ import annotations

from typing import Optional

from pydantic import Field

from agricsmart.schemas.base import BaseSchema


class PromptRequest(BaseSchema):
    prompt: str = Field(..., min_length=1, max_length=4000)
    generate_image: bool = Field(False, description="Also produce an illustration")


class CropRecommendationRequest(BaseSchema):
    location: str = Field(..., min_length=2, max_length=200)
    soil_type: Optional[str] = Field(None, max_length=100)
    climate: Optional[str] = Field(None, max_length=100)
    season: Optional[str] = Field(None, max_length=50)
    farm_size: Optional[str] = Field(None, max_length=50, description="e.g. '2 hectares'")


class DiseaseIdentificationRequest(BaseSchema):
    crop: str = Field(..., min_length=2, max_length=100)
    symptoms: str = Field(..., min_length=5, max_length=2000)
    image_url: Optional[str] = Field(None, max_length=1000)


class SoilAnalysisRequest(BaseSchema):
    ph: Optional[float] = Field(None, ge=0, le=14)
    nitrogen: Optional[float] = Field(None, ge=0, description="mg/kg")
    phosphorus: Optional[float] = Field(None, ge=0, description="mg/kg")
    potassium: Optional[float] = Field(None, ge=0, description="mg/kg")
    organic_matter: Optional[float] = Field(None, ge=0, le=100, description="percent")
    location: Optional[str] = Field(None, max_length=200)
    intended_crop: Optional[str] = Field(None, max_length=100)


class WeatherImpactRequest(BaseSchema):
    crop: str = Field(..., min_length=2, max_length=100)
    location: str = Field(..., min_length=2, max_length=200)
    forecast: str = Field(..., min_length=3, max_length=2000, description="Expected conditions")


class MarketAnalysisRequest(BaseSchema):
    product: str = Field(..., min_length=2, max_length=100)
    location: str = Field(..., min_length=2, max_length=200)
    timeframe: str = Field("next 3 months", max_length=100)


class AgritechRequest(BaseSchema):
    question: str = Field(..., min_length=5, max_length=2000)
    farm_type: Optional[str] = Field(None, max_length=100)
    budget: Optional[str] = Field(None, max_length=100)


class ImageRequest(BaseSchema):
    prompt: str = Field(..., min_length=3, max_length=1000)


class AdvisoryResponse(BaseSchema):
    topic: str
    answer: str
    model: str
    image_url: Optional[str] = None


class ImageResponse(BaseSchema):
    prompt: str
    image_url: Optional[str] = None
