import os
import tempfile

# Keep the rotating log file out of the working tree while tests run.
os.environ.setdefault(
    "HUD_LOG_FILE", os.path.join(tempfile.mkdtemp(prefix="hud-logs-"), "trading_hud.log")
)
