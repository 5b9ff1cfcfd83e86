from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from authorization import AuthorizationFlag
from config import API_HOST, API_PORT, SCAN_AUTHORIZED
from logging_config import configure_logging
from pipeline import ChannelPipeline
from scan_scheduler import install_passive_tick, request_scan_now
from scan_scheduler import scheduler as default_scheduler
from scanner import HostWifiScanner

configure_logging()
logger = structlog.get_logger("zigbee_channels")


# ============================================================
# Data Models
# ============================================================

class AuthorizationUpdate(BaseModel):
    authorized: bool


# ============================================================
# Presentation helpers
# ============================================================

def channel_for_display(channel):
    data = channel.model_dump(mode="json")
    # strongest first for the details view
    data["interfering_networks"].sort(key=lambda n: n["signal_strength_dbm"], reverse=True)
    return data


# ============================================================
# FastAPI App
# ============================================================

def create_app(scan_source=None, authorization=None, scheduler=None):
    """
    Wire the pipeline to its collaborators and expose it read-only.
    Defaults use the host scanner and the shared background scheduler.
    """
    scan_source = scan_source if scan_source is not None else HostWifiScanner()
    authorization = authorization if authorization is not None else AuthorizationFlag(SCAN_AUTHORIZED)
    scheduler = scheduler if scheduler is not None else default_scheduler

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        pipeline = ChannelPipeline(scan_source, authorization, scheduler=scheduler)
        app.state.pipeline = pipeline
        install_passive_tick(scheduler, pipeline)
        if not scheduler.running:
            scheduler.start()
        pipeline.start()
        try:
            yield
        finally:
            pipeline.close()
            if scheduler.running:
                scheduler.shutdown(wait=False)

    app = FastAPI(title="Zigbee Channel Advisor", lifespan=lifespan)
    app.state.authorization = authorization

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}

    @app.get("/state")
    def state():
        return app.state.pipeline.state.model_dump(mode="json")

    @app.get("/channels")
    def channels():
        return [channel_for_display(c) for c in app.state.pipeline.state.congestion]

    @app.get("/recommendations")
    def recommendations():
        current = app.state.pipeline.state
        return {
            "recommendations": [channel_for_display(c) for c in current.recommendations],
            "recommended_channel_numbers": sorted(current.recommended_channel_numbers),
        }

    @app.get("/refresh-now")
    @app.post("/refresh-now")
    def refresh_now():
        if not request_scan_now(app.state.pipeline):
            return {"ok": False, "skipped": True}
        return {"ok": True}

    @app.post("/authorization")
    def set_authorization(payload: AuthorizationUpdate):
        app.state.authorization.set(payload.authorized)
        current = app.state.pipeline.flush().result(timeout=5)
        return {"ok": True, "authorized": current.authorized}

    return app


app = create_app()


if __name__ == "__main__":
    logger.info("server_starting", host=API_HOST, port=API_PORT)
    uvicorn.run(app, host=API_HOST, port=API_PORT)
