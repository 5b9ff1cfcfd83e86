from enum import Enum
from typing import FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# Scan Input
# ============================================================

class NetworkObservation(BaseModel):
    """One Wi-Fi access point seen in a single scan."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    center_frequency_mhz: int
    signal_strength_dbm: int


# ============================================================
# Zigbee Channels
# ============================================================

class ZigbeeChannelDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel_number: int
    center_frequency_mhz: int


class ChannelTag(str, Enum):
    """Static pros/cons attached to a channel, values are display text."""

    ZLL_RECOMMENDED = "Zigbee Light Link (ZLL) recommended channel"
    LOW_WIFI_INTERFERENCE = "Little to no Wi-Fi interference"
    LOW_TRANSMIT_POWER = "Lower transmission power in some regions"
    POOR_DEVICE_SUPPORT = "Not supported by some devices"
    FREQUENTLY_CONGESTED = "Usually occupied by Wi-Fi (Channel 1)"
    NON_STANDARD = "Not a standard ZLL channel"
    COMPATIBILITY_RISK = "Possible compatibility issues (Hue, IKEA, etc.)"


class ChannelCongestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel_number: int
    center_frequency_mhz: int
    congestion_score: float = Field(default=0.0, ge=0.0)
    is_zll_recommended: bool = False
    is_warning_channel: bool = False
    pros: Tuple[ChannelTag, ...] = ()
    cons: Tuple[ChannelTag, ...] = ()
    interfering_networks: Tuple[NetworkObservation, ...] = ()
    congestion_dbm: Optional[int] = None


# ============================================================
# Pipeline State
# ============================================================

class PipelineState(BaseModel):
    """Snapshot of everything the pipeline knows.

    congestion and recommendations are always derived from
    latest_observations in the same step, so a reader never sees one
    without the other.
    """

    model_config = ConfigDict(frozen=True)

    is_scanning: bool = False
    authorized: bool = False
    latest_observations: Tuple[NetworkObservation, ...] = ()
    congestion: Tuple[ChannelCongestion, ...] = ()
    recommendations: Tuple[ChannelCongestion, ...] = ()
    recommended_channel_numbers: FrozenSet[int] = Field(default_factory=frozenset)
