# ==============================================================================
# ADVISORY SERVICE - AI Agricultural Advice
# ==============================================================================
# Prompt templates over the OpenAI async client. Illustrations are a
# best-effort extra: a failed image never fails the advice.
# ==============================================================================

from __future__ import annotations

import logging
from typing import Any, List, Optional

from openai import AsyncOpenAI, OpenAIError

from agricsmart.core.exceptions import ServiceUnavailableError
from agricsmart.core.settings import Settings, settings as default_settings
from agricsmart.schemas.advisory import (
    AdvisoryResponse,
    AgritechRequest,
    CropRecommendationRequest,
    DiseaseIdentificationRequest,
    ImageResponse,
    MarketAnalysisRequest,
    PromptRequest,
    SoilAnalysisRequest,
    WeatherImpactRequest,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an agricultural expert specializing in crop management, soil science, "
    "agricultural technology, pest management and sustainable farming. Give practical, "
    "evidence-based advice tailored to the farmer's region, climate and resources. "
    "Prefer sustainable and cost-effective approaches with concrete implementation steps."
)


def _line(label: str, value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return f"{label}: {value}"


def _compose(intro: str, details: List[Optional[str]], asks: List[str]) -> str:
    parts = [intro]
    lines = [d for d in details if d]
    if lines:
        parts.append("\n".join(lines))
    parts.append(
        "Please include:\n" + "\n".join(f"{i}. {ask}" for i, ask in enumerate(asks, 1))
    )
    return "\n\n".join(parts)


class AdvisoryService:
    """
    Agricultural Q&A backed by a chat-completion model.

    Example:
        >>> service = AdvisoryService()
        >>> advice = await service.crop_recommendations(
        ...     CropRecommendationRequest(location="Kumasi, Ghana", season="rainy")
        ... )
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        config: Optional[Settings] = None,
    ) -> None:
        self._settings = config or default_settings
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._settings.OPENAI_API_KEY:
                raise ServiceUnavailableError(
                    message="AI advisory is not configured",
                    service_name="openai",
                )
            self._client = AsyncOpenAI(
                api_key=self._settings.OPENAI_API_KEY,
                base_url=self._settings.OPENAI_BASE_URL or None,
                timeout=self._settings.OPENAI_TIMEOUT,
            )
        return self._client

    async def _complete(self, topic: str, prompt: str, temperature: float = 0.5) -> AdvisoryResponse:
        client = self.client
        try:
            response = await client.chat.completions.create(
                model=self._settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                max_tokens=self._settings.OPENAI_MAX_TOKENS,
            )
        except OpenAIError as e:
            logger.error(f"AI {topic} request failed: {e}")
            raise ServiceUnavailableError(
                message="AI advisory is temporarily unavailable",
                service_name="openai",
            ) from e

        if response.usage:
            logger.info(f"AI {topic} answered with {response.usage.total_tokens} tokens")
        answer = response.choices[0].message.content if response.choices else None
        return AdvisoryResponse(
            topic=topic,
            answer=answer or "",
            model=response.model or self._settings.OPENAI_MODEL,
        )

    # ==========================================================================
    # ADVICE
    # ==========================================================================

    async def prompt(self, request: PromptRequest) -> AdvisoryResponse:
        result = await self._complete("prompt", request.prompt, temperature=0.7)
        if request.generate_image:
            image = await self.generate_image(request.prompt)
            result.image_url = image.image_url
        return result

    async def crop_recommendations(self, request: CropRecommendationRequest) -> AdvisoryResponse:
        prompt = _compose(
            f"Recommend crops to grow in {request.location}.",
            [
                _line("Soil type", request.soil_type),
                _line("Climate", request.climate),
                _line("Season", request.season),
                _line("Farm size", request.farm_size),
            ],
            [
                "The most suitable crops and why",
                "Soil preparation and planting techniques",
                "Watering schedule",
                "Pest management",
                "Expected harvest timing",
            ],
        )
        return await self._complete("crop-recommendations", prompt)

    async def identify_disease(self, request: DiseaseIdentificationRequest) -> AdvisoryResponse:
        prompt = _compose(
            f"Analyze these symptoms for a possible disease affecting {request.crop}.",
            [
                _line("Symptoms", request.symptoms),
                _line("Photo", request.image_url),
            ],
            [
                "Possible diseases that match these symptoms",
                "Steps to confirm the diagnosis",
                "Organic and chemical treatment options",
                "Preventive measures",
                "Risk to nearby crops",
            ],
        )
        return await self._complete("disease-identification", prompt, temperature=0.3)

    async def analyze_soil(self, request: SoilAnalysisRequest) -> AdvisoryResponse:
        prompt = _compose(
            "Interpret this soil test and recommend improvements.",
            [
                _line("pH", request.ph),
                _line("Nitrogen (mg/kg)", request.nitrogen),
                _line("Phosphorus (mg/kg)", request.phosphorus),
                _line("Potassium (mg/kg)", request.potassium),
                _line("Organic matter (%)", request.organic_matter),
                _line("Location", request.location),
                _line("Intended crop", request.intended_crop),
            ],
            [
                "Assessment of soil health",
                "Fertilizer and amendment recommendations with quantities",
                "Crops well suited to this soil",
                "Long-term soil improvement practices",
            ],
        )
        return await self._complete("soil-analysis", prompt, temperature=0.3)

    async def weather_impact(self, request: WeatherImpactRequest) -> AdvisoryResponse:
        prompt = _compose(
            f"Assess how the expected weather will affect {request.crop} in {request.location}.",
            [_line("Forecast", request.forecast)],
            [
                "Expected impact on growth and yield",
                "Immediate protective actions",
                "Irrigation and drainage adjustments",
                "Disease and pest risks under these conditions",
            ],
        )
        return await self._complete("weather-impact", prompt)

    async def market_analysis(self, request: MarketAnalysisRequest) -> AdvisoryResponse:
        prompt = _compose(
            f"Analyze the market outlook for {request.product} in {request.location} "
            f"over the {request.timeframe}.",
            [],
            [
                "Current price trends and drivers",
                "Seasonal price patterns",
                "Best timing for selling",
                "Storage and value-addition options",
                "Risks to watch",
            ],
        )
        return await self._complete("market-analysis", prompt)

    async def agritech_advice(self, request: AgritechRequest) -> AdvisoryResponse:
        prompt = _compose(
            request.question,
            [
                _line("Farm type", request.farm_type),
                _line("Budget", request.budget),
            ],
            [
                "Technology options that fit the budget",
                "Implementation steps and timeline",
                "Expected benefits and return on investment",
                "Maintenance and training needs",
            ],
        )
        return await self._complete("agritech", prompt)

    # ==========================================================================
    # IMAGES
    # ==========================================================================

    async def generate_image(self, prompt: str) -> ImageResponse:
        """Illustration for a prompt. Returns ``image_url=None`` on failure."""
        client = self.client
        try:
            response = await client.images.generate(
                model=self._settings.OPENAI_IMAGE_MODEL,
                prompt=f"Agricultural image: {prompt}",
                n=1,
                size="1024x1024",
            )
            url = response.data[0].url if response.data else None
        except OpenAIError as e:
            logger.warning(f"Image generation failed: {e}")
            url = None
        return ImageResponse(prompt=prompt, image_url=url)
