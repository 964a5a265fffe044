from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .clients import close_clients, get_zeroex_client
from .config import get_settings
from .observability import PROMETHEUS_CONTENT_TYPE, generate_prometheus_metrics


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - startup/shutdown wiring
    settings = get_settings()
    logger = logging.getLogger(settings.service_name)
    logger.info("Starting %s on chain %s", settings.service_name, settings.chain_id)
    get_zeroex_client()
    yield
    logger.info("Stopping %s - closing HTTP clients", settings.service_name)
    await close_clients()
    logger.info("%s stopped successfully", settings.service_name)


settings = get_settings()

log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
log_path = Path(settings.log_dir or "logs")
log_path.mkdir(parents=True, exist_ok=True)
file_handler = logging.FileHandler(log_path / "swapdesk_service.log")
file_handler.setFormatter(
    logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
)
root_logger = logging.getLogger()
root_logger.setLevel(log_level)
root_logger.addHandler(file_handler)
app = FastAPI(title="Swapdesk Service", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix="/api")


@app.get("/metrics")
async def prometheus_metrics() -> Response:
    payload = generate_prometheus_metrics()
    return Response(content=payload, media_type=PROMETHEUS_CONTENT_TYPE)


@app.get("/healthz")
async def healthz() -> dict[str, object]:
    return {"status": "ok", "service": settings.service_name, "chainId": settings.chain_id}
