"""
Decision oracle output schemas.

The oracle answers in one of two shapes. They form a tagged union on
``kind`` so the controller dispatches on the discriminant instead of
probing for fields:

    decision = parse_decision(payload)
    if decision.kind == "portfolio": ...
"""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


def _clamp_confidence(value) -> float:
    """Providers sometimes answer 0-100; normalize everything into [0, 1]."""
    if value is None:
        return 0.0
    value = float(value)
    if value > 1.0:
        value = value / 100.0
    return max(0.0, min(1.0, value))


class _OracleModel(BaseModel):
    """Accepts the camelCase keys the providers are prompted to emit."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class SingleAssetDecision(_OracleModel):
    kind: Literal["single"] = "single"
    action: Literal["BUY", "SELL", "HOLD"] = "HOLD"
    confidence: float = 0.0
    reason: str = ""
    entry_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    risk_reward_ratio: Optional[float] = None
    timeframe: Optional[str] = None
    key_factors: List[str] = Field(default_factory=list)
    source: str = "unknown"

    @field_validator("action", mode="before")
    @classmethod
    def upper_action(cls, v):
        return str(v or "HOLD").upper()

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp(cls, v):
        return _clamp_confidence(v)


class PositionAction(_OracleModel):
    asset: str
    action: Literal["CLOSE", "HOLD"] = "HOLD"
    reason: str = ""

    @field_validator("action", mode="before")
    @classmethod
    def upper_action(cls, v):
        return str(v or "HOLD").upper()


class NewOrder(_OracleModel):
    should_open: bool = False
    side: Optional[Literal["BUY", "SELL"]] = None
    quantity: float = 0.0
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    reason: str = ""

    @field_validator("side", mode="before")
    @classmethod
    def upper_side(cls, v):
        return str(v).upper() if v else None


class PortfolioDecision(_OracleModel):
    kind: Literal["portfolio"] = "portfolio"
    position_actions: List[PositionAction] = Field(default_factory=list)
    new_order: NewOrder = Field(default_factory=NewOrder)
    overall_strategy: str = ""
    market_outlook: Literal["bullish", "bearish", "neutral"] = "neutral"
    confidence: float = 0.0
    next_check_recommendation: Optional[str] = None
    source: str = "unknown"

    @field_validator("market_outlook", mode="before")
    @classmethod
    def lower_outlook(cls, v):
        outlook = str(v or "neutral").lower()
        return outlook if outlook in ("bullish", "bearish", "neutral") else "neutral"

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp(cls, v):
        return _clamp_confidence(v)


Decision = Annotated[Union[SingleAssetDecision, PortfolioDecision], Field(discriminator="kind")]

_decision_adapter = TypeAdapter(Decision)


def parse_decision(payload: dict) -> Union[SingleAssetDecision, PortfolioDecision]:
    """Validate a dict carrying an explicit ``kind`` into the right variant."""
    return _decision_adapter.validate_python(payload)
