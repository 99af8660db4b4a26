from dotenv import load_dotenv

import os

load_dotenv()

TURN_DURATION_SEC = float(os.getenv("TURN_DURATION_SEC", "30"))
DISCONNECT_GRACE_SEC = float(os.getenv("DISCONNECT_GRACE_SEC", "30"))

MIN_PLAYERS = int(os.getenv("MIN_PLAYERS", "2"))
MAX_PLAYERS = int(os.getenv("MAX_PLAYERS", "5"))

# memory:// keeps fan-out in process; redis://host:6379 also works
BROADCAST_URL = os.getenv("BROADCAST_URL", "memory://")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
