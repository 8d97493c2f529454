# config.py
import os
import logging

from dotenv import load_dotenv

load_dotenv()  # picks up GROQ_API_KEY / MATHPIX_* from .env, if present

# ====== Generative model (Groq) ======
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
MODEL_ID = os.getenv("MODEL_ID", "meta-llama/llama-4-scout-17b-16e-instruct")
MODEL_TEMPERATURE = float(os.getenv("MODEL_TEMPERATURE", "1"))
MODEL_MAX_TOKENS = int(os.getenv("MODEL_MAX_TOKENS", "2048"))
MODEL_TIMEOUT = float(os.getenv("MODEL_TIMEOUT", "60"))

# ====== OCR (Mathpix) ======
MATHPIX_APP_ID = (os.getenv("MATHPIX_APP_ID") or "").strip()
MATHPIX_APP_KEY = (os.getenv("MATHPIX_APP_KEY") or "").strip()
MATHPIX_URL = os.getenv("MATHPIX_URL", "https://api.mathpix.com/v3/text")
OCR_TIMEOUT = float(os.getenv("OCR_TIMEOUT", "30"))

# ====== HTTP API ======
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8001"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()

# ====== Agent gateway / front end ======
BACKEND_BASE_URL = os.getenv("BACKEND_BASE_URL", f"http://{HOST}:{PORT}")
AGENT_SEED = os.getenv("AGENT_SEED", "mathvision_agent_seed_v1")
AGENT_PORT = int(os.getenv("AGENT_PORT", "8002"))
PUBLIC_ENDPOINT = os.getenv("PUBLIC_ENDPOINT", f"http://127.0.0.1:{AGENT_PORT}/submit")


def mathpix_enabled() -> bool:
    return bool(MATHPIX_APP_ID and MATHPIX_APP_KEY)


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure the root logger once; later calls are no-ops."""
    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.addHandler(handler)
    root.setLevel(level.upper())
