"""Wire models shared by the gateway and its clients.

Field names are snake_case in Python and camelCase on the wire, matching the
mobile app's JSON.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

WorkoutType = Literal["AMRAP", "For Time", "EMOM", "Chipper", "Intervals", "Other"]
Confidence = Literal["high", "medium", "low"]

PARSE_WOD = "parse_wod"
GENERATE_STRATEGY = "generate_strategy"


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class WeightRx(WireModel):
    male: float
    female: float


class WodMovement(WireModel):
    name: str
    reps: int | str
    weight_rx: WeightRx | None = None
    equipment: str | None = None
    notes: str | None = None


class ParsedWorkout(WireModel):
    workout_type: WorkoutType
    time_cap: float | None = None
    rounds: int | None = None
    movements: list[WodMovement]
    notes: str | None = None
    confidence: Confidence


class ScalingAdvice(WireModel):
    movement: str
    original: str
    scaled: str
    reason: str


class SetBreakdown(WireModel):
    movement: str
    strategy: str


class EstimatedTime(WireModel):
    min: float
    max: float


class SubstitutionOption(WireModel):
    name: str
    reason: str


class Substitution(WireModel):
    movement: str
    options: list[SubstitutionOption]


class WodStrategy(WireModel):
    scaling: list[ScalingAdvice] | None = None
    pacing: str
    set_breakdowns: list[SetBreakdown]
    estimated_time: EstimatedTime
    tips: list[str]
    cautions: list[str] | None = None
    substitutions: list[Substitution] | None = None


class UserProfile(WireModel):
    experience_level: str | None = None
    skills: dict[str, int] | None = None
    strength_numbers: dict[str, int] | None = None
    limitations: list[str] | None = None


class ParseWodRequest(WireModel):
    action: Literal["parse_wod"]
    image_base64: str = Field(min_length=1)
    mime_type: str = "image/png"


class GenerateStrategyRequest(WireModel):
    action: Literal["generate_strategy"]
    workout: ParsedWorkout
    user_profile: UserProfile | None = None


ProxyRequest = Annotated[
    Union[ParseWodRequest, GenerateStrategyRequest],
    Field(discriminator="action"),
]
proxy_request_adapter: TypeAdapter[ProxyRequest] = TypeAdapter(ProxyRequest)


class ProxyResponse(BaseModel):
    data: dict[str, Any]
    remaining: int


class LimitsResponse(BaseModel):
    tier: str
    limit: int
    used: int
    remaining: int
    date: str


class ErrorResponse(BaseModel):
    error: str
    code: str
    message: str | None = None
    remaining: int | None = None


__all__ = [
    "PARSE_WOD",
    "GENERATE_STRATEGY",
    "WeightRx",
    "WodMovement",
    "ParsedWorkout",
    "ScalingAdvice",
    "SetBreakdown",
    "EstimatedTime",
    "SubstitutionOption",
    "Substitution",
    "WodStrategy",
    "UserProfile",
    "ParseWodRequest",
    "GenerateStrategyRequest",
    "ProxyRequest",
    "proxy_request_adapter",
    "ProxyResponse",
    "LimitsResponse",
    "ErrorResponse",
]
