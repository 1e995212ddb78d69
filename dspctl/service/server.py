"""FastAPI application for the dspctl signal flow engines."""
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from dspctl.signal_flow.routes import router as signal_flow_router
from dspctl.signal_flow.service import SignalFlowService, set_signal_flow_service
from dspctl.transport.client import EngineClient
from dspctl.transport.protocol import EngineTransport


def create_app(transport: Optional[EngineTransport] = None) -> FastAPI:
    """
    Build the app. With ``transport`` the live ``/signal-flow`` GET/PUT routes talk
    to that engine; without one they answer 502 until a service with a client is
    installed via ``set_signal_flow_service``.
    """
    if transport is not None:
        set_signal_flow_service(SignalFlowService(client=EngineClient(transport)))
    app = FastAPI(title="dspctl", version="0.1.0")
    app.include_router(signal_flow_router)
    return app


app = create_app()
