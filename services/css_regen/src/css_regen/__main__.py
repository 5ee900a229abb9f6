from __future__ import annotations
import os
import uvicorn
from core_config.constants import HEALTH_PORT as PORT

LOG_LEVEL = os.getenv("LOG_LEVEL", "info")
ACCESS_LOG = os.getenv("ACCESS_LOG", "0") in ("1","true","True","yes","on")

if __name__ == "__main__":
    uvicorn.run("css_regen.app:app", host="0.0.0.0", port=PORT, log_level=LOG_LEVEL, access_log=ACCESS_LOG)
