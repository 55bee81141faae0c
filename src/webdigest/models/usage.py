from __future__ import annotations

from pydantic import BaseModel, Field


class UsageCounters(BaseModel):
    input: int = 0
    output: int = 0
    calls: int = 0


class UsageTotals(BaseModel):
    """Running token totals per usage bucket. Only ``digest`` exists today."""

    digest: UsageCounters = Field(default_factory=UsageCounters)


class Pricing(BaseModel):
    """Per-million token prices for the selected model. Configuration only."""

    model: str
    input_per_1m: float
    output_per_1m: float
    last_updated: str
    source: str = "https://openai.com/api/pricing/"


class ModelOption(BaseModel):
    name: str
    api_model: str
    description: str
    input_per_1m: float
    output_per_1m: float
    recommended: bool = False
    priority: bool = False
