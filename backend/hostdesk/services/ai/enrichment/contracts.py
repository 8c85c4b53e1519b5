"""Enrichment contracts: feature suggestion schema and result wrappers."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..common.providers.base import ProviderResult

MIN_DESCRIPTION_CHARS = 20
MAX_DESCRIPTION_CHARS = 5000


class FeatureSuggestion(BaseModel):
    """Structured output of ``suggest_features``; upstream keys are camelCase."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    unique_selling_proposition: str = Field(..., alias="uniqueSellingProposition", min_length=1)
    core_features: list[str] = Field(..., alias="coreFeatures", min_length=1)
    growth_features: list[str] = Field(..., alias="growthFeatures", min_length=1)

    @field_validator("core_features", "growth_features")
    @classmethod
    def no_blank_items(cls, v: list[str]) -> list[str]:
        if any(not item.strip() for item in v):
            raise ValueError("feature entries must be non-empty strings")
        return [item.strip() for item in v]


@dataclass
class DescriptionResult:
    text: str
    provider_result: ProviderResult


@dataclass
class FeatureSuggestionResult:
    suggestion: FeatureSuggestion
    provider_result: ProviderResult
