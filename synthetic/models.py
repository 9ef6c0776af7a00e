"""
Synthetic Record Models

Generator inputs (GEXRegime, WebhookScenario) and immutable generator
outputs (SyntheticGEX, SyntheticWebhook). Every output carries metadata
marking it synthetic together with the input that produced it.
"""

import math
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, Union, Type

from harness_errors import InvalidInputError


class GEXRegimeType(Enum):
    """Qualitative gamma-exposure regime."""
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    GAMMA_FLIP_NEAR = "GAMMA_FLIP_NEAR"
    NEUTRAL = "NEUTRAL"


class WebhookPattern(Enum):
    """Price-action pattern driving OHLC generation."""
    ORB_BREAKOUT = "ORB_BREAKOUT"
    ORB_FAKEOUT = "ORB_FAKEOUT"
    TREND_CONTINUATION = "TREND_CONTINUATION"
    CHOP = "CHOP"
    VOL_COMPRESSION = "VOL_COMPRESSION"
    VOL_EXPANSION = "VOL_EXPANSION"


class MarketSession(Enum):
    """Intraday session a webhook belongs to."""
    RTH_OPEN = "RTH_OPEN"
    MID_DAY = "MID_DAY"
    POWER_HOUR = "POWER_HOUR"


class InteractionType(Enum):
    """Multi-agent interaction a scenario is meant to exercise."""
    ORB_TTM_ALIGNMENT = "ORB_TTM_ALIGNMENT"
    SATYLAND_CONFIRMATION = "SATYLAND_CONFIRMATION"
    AGENT_DISAGREEMENT = "AGENT_DISAGREEMENT"


PATTERN_SIGNALS = {
    WebhookPattern.ORB_BREAKOUT: "ORB_BREAK",
    WebhookPattern.ORB_FAKEOUT: "ORB_FAKE",
    WebhookPattern.TREND_CONTINUATION: "TREND_CONT",
    WebhookPattern.CHOP: "CHOP",
    WebhookPattern.VOL_COMPRESSION: "VOL_COMP",
    WebhookPattern.VOL_EXPANSION: "VOL_EXP",
}

VARIANTS = ("A", "B")


def coerce_enum(enum_cls: Type[Enum], value: Union[str, Enum], label: str) -> Enum:
    """Convert a string discriminant to enum_cls, raising InvalidInputError if unknown."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(member.value for member in enum_cls)
        raise InvalidInputError(f"Unknown {label} '{value}'. Must be one of: {valid}") from None


def _is_finite(value: Any) -> bool:
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def _serialize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    return value


@dataclass(frozen=True)
class GEXRegime:
    """
    Generator input for a GEX record.

    gamma_flip_level is optional; when given, the generator uses it instead
    of deriving its own flip level.
    """
    type: GEXRegimeType
    symbol: str
    spot_price: float
    gamma_flip_level: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "type", coerce_enum(GEXRegimeType, self.type, "GEX regime"))
        if not isinstance(self.symbol, str) or not self.symbol.strip():
            raise InvalidInputError(f"Symbol must be a non-empty string, got {self.symbol!r}")
        if not _is_finite(self.spot_price) or not self.spot_price > 0:
            raise InvalidInputError(f"Spot price must be a finite positive number, got {self.spot_price}")
        if self.gamma_flip_level is not None and not _is_finite(self.gamma_flip_level):
            raise InvalidInputError(f"Gamma flip level must be finite, got {self.gamma_flip_level}")

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(asdict(self))


@dataclass(frozen=True)
class WebhookScenario:
    """Generator input for a webhook / OHLC record."""
    symbol: str
    timeframe: str
    session: MarketSession
    pattern: WebhookPattern
    price: float
    volume: int
    timestamp: int  # epoch milliseconds
    routing_seed: Optional[int] = None
    variant: Optional[str] = None
    interaction_type: Optional[InteractionType] = None

    def __post_init__(self):
        object.__setattr__(self, "session", coerce_enum(MarketSession, self.session, "session"))
        object.__setattr__(self, "pattern", coerce_enum(WebhookPattern, self.pattern, "pattern"))
        if self.interaction_type is not None:
            object.__setattr__(
                self, "interaction_type",
                coerce_enum(InteractionType, self.interaction_type, "interaction type")
            )

        if not isinstance(self.symbol, str) or not self.symbol.strip():
            raise InvalidInputError(f"Symbol must be a non-empty string, got {self.symbol!r}")
        if not self.timeframe:
            raise InvalidInputError("Timeframe is required")
        if not _is_finite(self.price) or not self.price > 0:
            raise InvalidInputError(f"Price must be a finite positive number, got {self.price}")
        if self.volume is None or self.volume < 0:
            raise InvalidInputError(f"Volume must be non-negative, got {self.volume}")
        if self.variant is not None and self.variant not in VARIANTS:
            raise InvalidInputError(f"Variant must be 'A' or 'B', got {self.variant!r}")

    def to_dict(self) -> Dict[str, Any]:
        return _serialize(asdict(self))


@dataclass(frozen=True)
class SyntheticMetadata:
    """Provenance attached to every generated record."""
    provenance: Union[GEXRegime, WebhookScenario]
    synthetic: bool = True
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "synthetic": self.synthetic,
            "provenance": self.provenance.to_dict(),
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class GEXData:
    """Gamma exposure figures for one symbol."""
    total_gex: float
    call_gex: float
    put_gex: float
    net_gex: float
    gamma_flip_level: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WebhookPayload:
    """Signal webhook in the production wire format."""
    symbol: str
    timeframe: str
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: int
    session: str
    pattern: str
    signal: str
    strategy: str

    @property
    def signal_id(self) -> str:
        return f"{self.symbol}-{self.timeframe}-{self.timestamp}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SyntheticGEX:
    """Generated GEX record."""
    symbol: str
    regime: GEXRegimeType
    data: GEXData
    metadata: SyntheticMetadata

    @property
    def synthetic(self) -> bool:
        return self.metadata.synthetic

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "regime": self.regime.value,
            "data": self.data.to_dict(),
            "metadata": self.metadata.to_dict(),
        }


@dataclass(frozen=True)
class SyntheticWebhook:
    """Generated webhook record; scenario routing hints live in provenance."""
    payload: WebhookPayload
    metadata: SyntheticMetadata

    @property
    def synthetic(self) -> bool:
        return self.metadata.synthetic

    @property
    def scenario(self) -> WebhookScenario:
        return self.metadata.provenance

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payload": self.payload.to_dict(),
            "metadata": self.metadata.to_dict(),
        }
