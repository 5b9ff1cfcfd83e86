"""
zigbee_analyzer.py
- Scores each Zigbee channel (11-26) by the Wi-Fi power overlapping it
- Pure functions only, safe to call from any thread
- Run directly to score a saved wifi_scan.json snapshot
"""

import json
import math
import sys

import structlog

from models import ChannelCongestion, ChannelTag, NetworkObservation, ZigbeeChannelDefinition

logger = structlog.get_logger(__name__)

FIRST_CHANNEL = 11
LAST_CHANNEL = 26
BASE_FREQUENCY_MHZ = 2405
CHANNEL_SPACING_MHZ = 5

# 20MHz Wi-Fi channel, ~22MHz spectral mask
WIFI_BANDWIDTH_MHZ = 22
# half the Zigbee channel width
ZIGBEE_WIDTH_SAFETY_MHZ = 2.0
OVERLAP_WINDOW_MHZ = WIFI_BANDWIDTH_MHZ / 2 + ZIGBEE_WIDTH_SAFETY_MHZ

ZLL_CHANNELS = frozenset({11, 15, 20, 25})
WARNING_CHANNEL = 26
CONGESTED_CHANNEL = 11


def center_frequency_for(channel):
    return BASE_FREQUENCY_MHZ + CHANNEL_SPACING_MHZ * (channel - FIRST_CHANNEL)


ZIGBEE_CHANNELS = tuple(
    ZigbeeChannelDefinition(channel_number=ch, center_frequency_mhz=center_frequency_for(ch))
    for ch in range(FIRST_CHANNEL, LAST_CHANNEL + 1)
)


def channel_definitions():
    return ZIGBEE_CHANNELS


def channel_tags(channel):
    """
    Static pros/cons for a channel number. Scan data never changes these.
    Returns (pros, cons).
    """
    pros, cons = [], []
    zll = channel in ZLL_CHANNELS

    if zll:
        pros.append(ChannelTag.ZLL_RECOMMENDED)
    else:
        cons.append(ChannelTag.NON_STANDARD)
        cons.append(ChannelTag.COMPATIBILITY_RISK)

    if channel == WARNING_CHANNEL:
        pros.append(ChannelTag.LOW_WIFI_INTERFERENCE)
        cons.append(ChannelTag.LOW_TRANSMIT_POWER)
        cons.append(ChannelTag.POOR_DEVICE_SUPPORT)

    if channel == CONGESTED_CHANNEL:
        cons.append(ChannelTag.FREQUENTLY_CONGESTED)

    return pros, cons


def _clamped(obs: NetworkObservation):
    # scan data is noisy: a negative frequency overlaps nothing, and
    # anything above 0 dBm is treated as 0 dBm
    freq = obs.center_frequency_mhz
    dbm = obs.signal_strength_dbm
    if freq < 0 or dbm > 0:
        logger.debug(
            "observation_clamped",
            identifier=obs.identifier,
            center_frequency_mhz=freq,
            signal_strength_dbm=dbm,
        )
    return max(0, freq), min(0, dbm)


def dbm_to_power(dbm):
    # proportional to mW
    return 10.0 ** (dbm / 10.0)


def power_to_dbm(power):
    if power <= 0:
        return None
    return int(round(10.0 * math.log10(power)))


def score_channel(definition: ZigbeeChannelDefinition, observations) -> ChannelCongestion:
    total = 0.0
    interfering = []

    for obs in observations:
        freq, dbm = _clamped(obs)
        distance = abs(freq - definition.center_frequency_mhz)
        if distance < OVERLAP_WINDOW_MHZ:
            total += dbm_to_power(dbm)
            interfering.append(obs)

    ch = definition.channel_number
    pros, cons = channel_tags(ch)
    return ChannelCongestion(
        channel_number=ch,
        center_frequency_mhz=definition.center_frequency_mhz,
        congestion_score=total,
        is_zll_recommended=ch in ZLL_CHANNELS,
        is_warning_channel=ch == WARNING_CHANNEL,
        pros=pros,
        cons=cons,
        interfering_networks=interfering,
        congestion_dbm=power_to_dbm(total),
    )


def score_channels(observations):
    """
    Score all 16 Zigbee channels against one scan snapshot.

    Always returns 16 entries in ascending channel order, even for an empty
    scan. Duplicate observations are counted as many times as they appear.
    """
    observations = list(observations or [])
    scored = [score_channel(d, observations) for d in ZIGBEE_CHANNELS]
    logger.debug(
        "channels_scored",
        networks=len(observations),
        busy_channels=sum(1 for c in scored if c.congestion_score > 0),
    )
    return scored


# ---------------- CLI ----------------

def load_snapshot(scan_path):
    """Read the observation list written by scanner.py."""
    with open(scan_path, "r") as f:
        data = json.load(f)
    return [NetworkObservation(**n) for n in data.get("networks", [])]


def analyze(scan_path):
    from recommender import recommended_channel_numbers, select_recommendations

    observations = load_snapshot(scan_path)
    scored = score_channels(observations)
    picks = select_recommendations(scored)
    return {
        "total_networks": len(observations),
        "channels": [c.model_dump(mode="json") for c in scored],
        "recommendations": [c.channel_number for c in picks],
        "recommended_channel_numbers": sorted(recommended_channel_numbers(picks)),
    }


if __name__ == "__main__":
    from config import SCAN_OUTFILE

    path = sys.argv[1] if len(sys.argv) > 1 else SCAN_OUTFILE
    print(json.dumps(analyze(path), indent=2))
