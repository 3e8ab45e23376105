"""Run the uk-invest FastAPI server locally."""
from __future__ import annotations

import sys
import logging
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

import uvicorn  # type: ignore

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
# Per-broker pricing detail is logged at DEBUG
logging.getLogger('uk_invest.fees').setLevel(logging.INFO)
logging.getLogger('uvicorn').setLevel(logging.WARNING)


if __name__ == "__main__":
    uvicorn.run(
        "uk_invest.api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_dirs=[str(SRC_PATH)]
    )
