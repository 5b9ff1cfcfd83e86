import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent


def _env_bool(name, default):
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# -------- CONFIG YOU CAN TUNE --------
SETTLE_DELAY_SEC = float(os.getenv("SETTLE_DELAY_SEC", "1.0"))                 # isScanning stays on this long
PASSIVE_SCAN_INTERVAL_SEC = int(os.getenv("PASSIVE_SCAN_INTERVAL_SEC", "60"))   # background rescan period
SCAN_AUTHORIZED = _env_bool("SCAN_AUTHORIZED", True)
WIFI_INTERFACE = os.getenv("WIFI_INTERFACE") or None
SCAN_OUTFILE = Path(os.getenv("SCAN_OUTFILE", str(BASE_DIR / "wifi_scan.json")))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8787"))
# ------------------------------------
