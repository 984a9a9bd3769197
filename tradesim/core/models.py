"""tradesim.core.models

IO-boundary models.

Strategies and candles arrive as loose JSON/YAML/CSV. These pydantic models
validate them once and convert into the frozen dataclasses the loop runs on.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from tradesim.core.time import ensure_utc
from tradesim.core.types import Candle, RiskParameters, Strategy


class CandleModel(BaseModel):
    symbol: str
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    vwap: float | None = None

    model_config = {"frozen": True}

    def to_candle(self) -> Candle:
        return Candle(
            symbol=self.symbol,
            timestamp=ensure_utc(self.timestamp),
            open=float(self.open),
            high=float(self.high),
            low=float(self.low),
            close=float(self.close),
            volume=float(self.volume),
            vwap=None if self.vwap is None else float(self.vwap),
        )


class RiskParametersModel(BaseModel):
    max_position_size: float = Field(0.1, ge=0.0, validation_alias=AliasChoices("max_position_size", "maxPositionSize"))
    stop_loss: float = Field(0.05, ge=0.0, validation_alias=AliasChoices("stop_loss", "stopLoss"))
    take_profit: float = Field(0.10, ge=0.0, validation_alias=AliasChoices("take_profit", "takeProfit"))
    max_leverage: float = Field(1.0, ge=0.0, validation_alias=AliasChoices("max_leverage", "maxLeverage"))

    def to_risk(self) -> RiskParameters:
        return RiskParameters(
            max_position_size=self.max_position_size,
            stop_loss=self.stop_loss,
            take_profit=self.take_profit,
            max_leverage=self.max_leverage,
        )


class StrategyModel(BaseModel):
    """A strategy idea as produced upstream (LLM ideation or templates)."""

    id: str
    name: str = ""
    type: str = "MOMENTUM"
    symbols: list[str] = Field(default_factory=list)
    parameters: dict[str, Any] = Field(default_factory=dict)
    risk: RiskParametersModel = Field(
        default_factory=RiskParametersModel,
        validation_alias=AliasChoices("risk", "riskParameters", "risk_parameters"),
    )

    @field_validator("type")
    @classmethod
    def type_upper(cls, v: str) -> str:
        return str(v).strip().upper()

    def to_strategy(self) -> Strategy:
        return Strategy(
            id=self.id,
            name=self.name or self.id,
            type=self.type,
            symbols=tuple(self.symbols),
            parameters=dict(self.parameters),
            risk=self.risk.to_risk(),
        )
