import logging

# Logging has to be configured before the service modules create their loggers
# ruff: noqa: E402
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    force=True
)

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from livelist import config  # noqa: E402
from livelist.api.base import api_router  # noqa: E402

API_VERSION = "1.0.0"

app = FastAPI(
    title="Livelist API",
    description="Invite delivery for Livelist shared checklists",
    version=API_VERSION,
)

# Invite requests come from the web client at APP_URL
app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.APP_URL.rstrip("/")] if config.APP_URL else ["*"],
    allow_credentials=True,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(api_router)


@app.get("/")
def read_root():
    return {
        "message": "Livelist API",
        "version": API_VERSION,
        "email_configured": bool(config.RESEND_API_KEY),
    }
