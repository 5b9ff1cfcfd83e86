import json

import pytest

from models import ChannelTag
from zigbee_analyzer import (
    OVERLAP_WINDOW_MHZ,
    analyze,
    center_frequency_for,
    channel_definitions,
    score_channels,
)
from tests.conftest import obs


def by_channel(results):
    return {c.channel_number: c for c in results}


def test_returns_sixteen_channels_in_order():
    results = score_channels([])
    assert len(results) == 16
    assert [c.channel_number for c in results] == list(range(11, 27))
    assert results[0].center_frequency_mhz == 2405
    assert results[-1].center_frequency_mhz == 2480


def test_channel_definitions_match_formula():
    for d in channel_definitions():
        assert d.center_frequency_mhz == 2405 + 5 * (d.channel_number - 11)
    assert center_frequency_for(20) == 2450


def test_empty_scan_scores_zero():
    for c in score_channels([]):
        assert c.congestion_score == 0
        assert c.interfering_networks == ()
        assert c.congestion_dbm is None


def test_none_is_treated_as_empty_scan():
    assert len(score_channels(None)) == 16


def test_wifi_channel_1_hits_zigbee_11_not_26():
    results = by_channel(score_channels([obs("Net1", 2412, -40)]))

    assert results[11].congestion_score > 0
    assert results[11].congestion_score == pytest.approx(10 ** -4)
    assert results[11].congestion_dbm == -40
    assert results[26].congestion_score == 0


def test_overlap_window_is_strict():
    assert OVERLAP_WINDOW_MHZ == 13
    # 2405 + 13 sits exactly on the boundary and does not interfere
    results = by_channel(score_channels([obs("edge", 2418, -50), obs("inside", 2417, -50)]))
    assert [n.identifier for n in results[11].interfering_networks] == ["inside"]


def test_scores_sum_linear_power():
    results = by_channel(score_channels([obs("a", 2437, -50), obs("b", 2437, -50)]))
    ch = results[17]  # 2435 MHz
    assert ch.congestion_score == pytest.approx(2 * 10 ** -5)
    assert ch.congestion_dbm == -47


def test_duplicates_are_not_deduplicated_and_order_is_kept():
    scan = [obs("x", 2412, -70), obs("y", 2412, -40), obs("x", 2412, -70)]
    ch11 = by_channel(score_channels(scan))[11]
    assert [n.identifier for n in ch11.interfering_networks] == ["x", "y", "x"]


def test_zll_and_warning_flags():
    results = score_channels([])
    assert [c.channel_number for c in results if c.is_zll_recommended] == [11, 15, 20, 25]
    assert [c.channel_number for c in results if c.is_warning_channel] == [26]


def test_pros_and_cons():
    results = by_channel(score_channels([obs("Net1", 2412, -40)]))

    assert ChannelTag.ZLL_RECOMMENDED in results[11].pros
    assert ChannelTag.FREQUENTLY_CONGESTED in results[11].cons

    assert ChannelTag.LOW_WIFI_INTERFERENCE in results[26].pros
    assert ChannelTag.LOW_TRANSMIT_POWER in results[26].cons
    assert ChannelTag.POOR_DEVICE_SUPPORT in results[26].cons

    assert results[15].pros == (ChannelTag.ZLL_RECOMMENDED,)
    assert results[15].cons == ()

    assert results[12].pros == ()
    assert results[12].cons == (ChannelTag.NON_STANDARD, ChannelTag.COMPATIBILITY_RISK)


def test_noisy_values_are_clamped():
    scan = [obs("ghost", -2412, -40), obs("hot", 2412, 10)]
    results = by_channel(score_channels(scan))

    assert all(n.identifier != "ghost" for c in results.values() for n in c.interfering_networks)
    # +10 dBm counts as 0 dBm
    assert results[11].congestion_score == pytest.approx(1.0)
    assert results[11].congestion_dbm == 0


def test_scoring_is_repeatable():
    scan = [obs("a", 2412, -40), obs("b", 2462, -65), obs("c", 2437, -80)]
    assert score_channels(scan) == score_channels(scan)


def test_analyze_reads_snapshot(tmp_path):
    path = tmp_path / "wifi_scan.json"
    path.write_text(json.dumps({
        "ts": 0,
        "platform": "linux",
        "networks": [
            {"identifier": "aa:bb", "center_frequency_mhz": 2412, "signal_strength_dbm": -40},
        ],
    }))

    report = analyze(path)
    assert report["total_networks"] == 1
    assert len(report["channels"]) == 16
    assert len(report["recommendations"]) == 3
    assert report["recommendations"][-1] == 15
    assert 11 not in report["recommended_channel_numbers"]
