import argparse
import json
import platform
import re
import shutil
import subprocess
import threading
import time
from pathlib import Path

import structlog

from config import SCAN_OUTFILE, WIFI_INTERFACE
from models import NetworkObservation

logger = structlog.get_logger(__name__)

BAND_24_MIN_MHZ = 2400
BAND_24_MAX_MHZ = 2484
SCAN_TIMEOUT_SEC = 30


def run_cmd(cmd_list):
    """Run a scan tool, returning stdout or None if it could not run."""
    try:
        proc = subprocess.run(cmd_list, capture_output=True, text=True, timeout=SCAN_TIMEOUT_SEC)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("scan_command_failed", cmd=cmd_list[0], error=str(e))
        return None
    if proc.returncode != 0:
        logger.warning("scan_command_failed", cmd=cmd_list[0], returncode=proc.returncode, stderr=proc.stderr.strip())
        return None
    return proc.stdout


def is_24ghz(freq_mhz):
    return BAND_24_MIN_MHZ <= freq_mhz <= BAND_24_MAX_MHZ


def parse_channel(ch_str):
    # examples: "11 (2GHz, 20MHz)" or "36 (5GHz, 80MHz)"
    m = re.match(r"(\d+)", str(ch_str))
    return int(m.group(1)) if m else None


def channel_to_frequency(ch):
    if ch == 14:
        return 2484
    if 1 <= ch <= 13:
        return 2407 + 5 * ch
    return 5000 + 5 * ch


def parse_signal_noise(s):
    # expected like "-56 dBm / -91 dBm"
    m = re.findall(r"(-?\d+)\s*dBm", s or "")
    if len(m) >= 2:
        return int(m[0]), int(m[1])
    if len(m) == 1:
        return int(m[0]), None
    return None, None


def signal_pct_to_dbm(pct):
    # NetworkManager maps -100..-50 dBm onto 0..100%
    return int(round(pct / 2 - 100))


# ---------------- PLATFORM PARSERS ----------------

def parse_nmcli(out):
    """
    Parse `nmcli -t -f SSID,BSSID,FREQ,SIGNAL dev wifi list`.
    Terse mode escapes the colons inside BSSIDs as `\\:`.
    """
    nets = []
    for line in (out or "").splitlines():
        parts = re.split(r"(?<!\\):", line.strip())
        if len(parts) < 4:
            continue
        ssid, bssid, freq, signal = (p.replace("\\:", ":") for p in parts[-4:])
        m = re.match(r"(\d+)", freq)
        if not m or not signal.isdigit():
            continue
        nets.append(NetworkObservation(
            identifier=bssid or ssid,
            center_frequency_mhz=int(m.group(1)),
            signal_strength_dbm=signal_pct_to_dbm(int(signal)),
        ))
    return nets


def parse_system_profiler(out):
    data = json.loads(out)
    nets = []
    for iface in data["SPAirPortDataType"][0].get("spairport_airport_interfaces", []):
        others = iface.get("spairport_airport_other_local_wireless_networks", [])
        for n in others:
            ch = parse_channel(n.get("spairport_network_channel"))
            rssi, _noise = parse_signal_noise(n.get("spairport_signal_noise", ""))
            if ch is None or rssi is None:
                continue
            nets.append(NetworkObservation(
                identifier=n.get("_name") or "",
                center_frequency_mhz=channel_to_frequency(ch),
                signal_strength_dbm=rssi,
            ))
    return nets


def scan_linux(interface=None):
    cmd = ["nmcli", "-t", "-f", "SSID,BSSID,FREQ,SIGNAL", "dev", "wifi", "list", "--rescan", "yes"]
    if interface:
        cmd += ["ifname", interface]
    return parse_nmcli(run_cmd(cmd))


def scan_macos():
    out = run_cmd(["system_profiler", "SPAirPortDataType", "-json"])
    if not out:
        return []
    try:
        return parse_system_profiler(out)
    except (ValueError, KeyError, IndexError) as e:
        logger.warning("scan_parse_failed", error=str(e))
        return []


def scan_tool():
    system = platform.system().lower()
    if "darwin" in system:
        return "system_profiler"
    return "nmcli"


def scan(interface=None):
    """One blocking scan, filtered to the 2.4GHz band."""
    if scan_tool() == "system_profiler":
        nets = scan_macos()
    else:
        nets = scan_linux(interface)
    nets = [n for n in nets if is_24ghz(n.center_frequency_mhz)]
    logger.info("scan_completed", networks=len(nets))
    return nets


# ---------------- SCAN SOURCE ----------------

class HostWifiScanner:
    """
    Pushes each scan's observations to subscribers.
    request_scan() only starts a scan; results arrive later on a worker thread.
    """

    def __init__(self, interface=WIFI_INTERFACE, scan_fn=scan):
        self.interface = interface
        self._scan_fn = scan_fn
        self._listeners = []
        self._last = None
        self._lock = threading.Lock()
        self._in_flight = None

    def subscribe(self, callback):
        with self._lock:
            self._listeners.append(callback)
            last = self._last
        if last is not None:
            callback(list(last))

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def request_scan(self):
        if shutil.which(scan_tool()) is None:
            logger.warning("scan_tool_missing", tool=scan_tool())
            return False
        with self._lock:
            if self._in_flight is not None and self._in_flight.is_alive():
                return True
            self._in_flight = threading.Thread(target=self._scan_and_emit, name="wifi-scan", daemon=True)
            self._in_flight.start()
        return True

    def _scan_and_emit(self):
        nets = self._scan_fn(self.interface)
        with self._lock:
            self._last = nets
            listeners = list(self._listeners)
        for listener in listeners:
            listener(list(nets))


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--interface", default=WIFI_INTERFACE, help="Wi-Fi interface (Linux only)")
    parser.add_argument("--out", default=str(SCAN_OUTFILE), help="Where to write the snapshot")
    args = parser.parse_args()

    nets = scan(args.interface)
    payload = {
        "ts": time.time(),
        "platform": platform.system().lower(),
        "networks": [n.model_dump() for n in nets],
    }
    Path(args.out).write_text(json.dumps(payload, indent=2))
    print(f"Saved {args.out} with {len(nets)} networks.")


if __name__ == "__main__":
    from logging_config import configure_logging

    configure_logging()
    main()
