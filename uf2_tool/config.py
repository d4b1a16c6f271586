import os
from pathlib import Path

LOG_DIR = Path(os.environ.get("UF2_TOOL_LOG_DIR") or Path(__file__).parent / "logs")
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOG_FILE = LOG_DIR / "session.jsonl"
APP_NAME = "UF2 userscript tool"
