# ==============================================================================
# AI ENDPOINTS - Agricultural Advisory
# ==============================================================================
# All routes require an authenticated user.
# ==============================================================================

from __future__ import annotations

from fastapi import APIRouter

from agricsmart.api.dependencies import AdvisoryServiceDep, CurrentUser
from agricsmart.schemas.advisory import (
    AdvisoryResponse,
    AgritechRequest,
    CropRecommendationRequest,
    DiseaseIdentificationRequest,
    ImageRequest,
    ImageResponse,
    MarketAnalysisRequest,
    PromptRequest,
    SoilAnalysisRequest,
    WeatherImpactRequest,
)
from agricsmart.schemas.base import APIResponse

router = APIRouter(prefix="/ai", tags=["AI Advisory"])


@router.post("/prompt", response_model=APIResponse[AdvisoryResponse], summary="Ask anything")
async def prompt(
    schema: PromptRequest,
    user: CurrentUser,
    service: AdvisoryServiceDep,
) -> APIResponse[AdvisoryResponse]:
    return APIResponse.ok(data=await service.prompt(schema))


@router.post(
    "/recommendations",
    response_model=APIResponse[AdvisoryResponse],
    summary="Crop recommendations",
)
async def crop_recommendations(
    schema: CropRecommendationRequest,
    user: CurrentUser,
    service: AdvisoryServiceDep,
) -> APIResponse[AdvisoryResponse]:
    return APIResponse.ok(data=await service.crop_recommendations(schema))


@router.post(
    "/disease-identification",
    response_model=APIResponse[AdvisoryResponse],
    summary="Identify crop disease",
)
async def disease_identification(
    schema: DiseaseIdentificationRequest,
    user: CurrentUser,
    service: AdvisoryServiceDep,
) -> APIResponse[AdvisoryResponse]:
    return APIResponse.ok(data=await service.identify_disease(schema))


@router.post(
    "/soil-analysis",
    response_model=APIResponse[AdvisoryResponse],
    summary="Interpret soil test",
)
async def soil_analysis(
    schema: SoilAnalysisRequest,
    user: CurrentUser,
    service: AdvisoryServiceDep,
) -> APIResponse[AdvisoryResponse]:
    return APIResponse.ok(data=await service.analyze_soil(schema))


@router.post(
    "/weather-impact",
    response_model=APIResponse[AdvisoryResponse],
    summary="Weather impact",
)
async def weather_impact(
    schema: WeatherImpactRequest,
    user: CurrentUser,
    service: AdvisoryServiceDep,
) -> APIResponse[AdvisoryResponse]:
    return APIResponse.ok(data=await service.weather_impact(schema))


@router.post(
    "/market-analysis",
    response_model=APIResponse[AdvisoryResponse],
    summary="Market price analysis",
)
async def market_analysis(
    schema: MarketAnalysisRequest,
    user: CurrentUser,
    service: AdvisoryServiceDep,
) -> APIResponse[AdvisoryResponse]:
    return APIResponse.ok(data=await service.market_analysis(schema))


@router.post(
    "/agritech",
    response_model=APIResponse[AdvisoryResponse],
    summary="Agricultural technology advice",
)
async def agritech(
    schema: AgritechRequest,
    user: CurrentUser,
    service: AdvisoryServiceDep,
) -> APIResponse[AdvisoryResponse]:
    return APIResponse.ok(data=await service.agritech_advice(schema))


@router.post(
    "/generate-image",
    response_model=APIResponse[ImageResponse],
    summary="Generate illustration",
    description="Best effort: image_url is null when generation fails.",
)
async def generate_image(
    schema: ImageRequest,
    user: CurrentUser,
    service: AdvisoryServiceDep,
) -> APIResponse[ImageResponse]:
    return APIResponse.ok(data=await service.generate_image(schema.prompt))
