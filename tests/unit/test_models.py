from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from tradesim.core.models import CandleModel, StrategyModel
from tradesim.core.types import Candle, StrategyType


def test_strategy_model_accepts_camel_case_risk() -> None:
    m = StrategyModel.model_validate(
        {
            "id": "s1",
            "type": "trend_following",
            "symbols": ["BTC-USD"],
            "parameters": {"fastPeriod": 8},
            "riskParameters": {"maxPositionSize": 0.2, "stopLoss": 0.03, "takeProfit": 0.06},
        }
    )
    s = m.to_strategy()
    assert s.type == "TREND_FOLLOWING"
    assert s.strategy_type is StrategyType.TREND_FOLLOWING
    assert s.symbols == ("BTC-USD",)
    assert s.risk.max_position_size == 0.2
    assert s.risk.stop_loss == 0.03
    assert s.risk.take_profit == 0.06
    assert s.name == "s1"


def test_strategy_model_defaults_to_momentum() -> None:
    s = StrategyModel(id="x").to_strategy()
    assert s.strategy_type is StrategyType.MOMENTUM
    assert s.parameters == {}


def test_strategy_model_rejects_negative_risk() -> None:
    with pytest.raises(ValidationError):
        StrategyModel.model_validate({"id": "x", "risk": {"stop_loss": -1}})


def test_unknown_strategy_type_has_no_enum() -> None:
    s = StrategyModel(id="x", type="arbitrage").to_strategy()
    assert s.strategy_type is None


def test_candle_model_converts_to_utc_dataclass() -> None:
    m = CandleModel(
        symbol="ETH-USD",
        timestamp=datetime(2024, 1, 1),
        open=1,
        high=2,
        low=0.5,
        close=1.5,
    )
    c = m.to_candle()
    assert isinstance(c, Candle)
    assert c.timestamp.tzinfo == UTC
    assert c.close == 1.5
    assert c.volume == 0.0
    assert c.vwap is None
