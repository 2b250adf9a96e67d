# Deploy: set STATUS_API_URL (and optionally API_KEY / STATUS_API_TOKEN) then run
# 'uvicorn server:app --host=0.0.0.0 --port=8000'
import logging
import os

from dotenv import load_dotenv

from status_matrix.api import create_app
from status_matrix.config import configure_logging, load_settings

load_dotenv()

settings = load_settings(os.getenv("STATUS_MATRIX_ENV"))
configure_logging(settings.log_level)
logger = logging.getLogger("status_matrix")

if not settings.api_key:
    logger.warning("API_KEY is not set. API endpoints will accept requests without a key.")
if not settings.api_token:
    logger.warning("STATUS_API_TOKEN is not set. Callers must send their own bearer token.")

app = create_app(settings)

__all__ = ["app"]
