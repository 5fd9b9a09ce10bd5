import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[3]
DATA_DIR = BASE_DIR / "data"
CONFIG_DIR = BASE_DIR / "config"

CONFIG_PATH = Path(os.getenv("TWSTOCK_CONFIG", str(CONFIG_DIR / "watchlist.yaml")))
SAMPLE_MARKET_PATH = DATA_DIR / "sample_market.yaml"

MARKET_TIMEZONE = "Asia/Taipei"
