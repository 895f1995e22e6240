"""FastAPI application exposing the gates."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..db import SessionFactory, _engine, get_session, init_models
from ..errors import GateExists, GateNotFound, InvalidPolicy, RateLimitExceeded, RelayError
from ..models import RelayFailureMode
from ..services.gates import GateService
from ..services.proxy import ProxyService
from ..services.relay import OriginClient, get_origin_client
from ..services.ticks import EpochTicker

logger = logging.getLogger(__name__)

app = FastAPI(title="Rate Limited Proxy API")
ticker = EpochTicker(settings.tick_seconds)


class CreateGateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    rate: str | dict[str, Any]
    origin_url: str | None = None
    relay_failure: RelayFailureMode = RelayFailureMode.KEEP
    tick: int | None = Field(default=None, ge=0)


class ForwardRequest(BaseModel):
    sender: str = Field(min_length=1)
    payload: str = Field(description="base64 encoded, relayed untouched")
    source: str | None = None


def current_tick() -> int:
    return ticker()


@app.on_event("startup")
async def startup() -> None:
    await init_models(_engine)
    async with SessionFactory() as session:
        service = GateService(session)
        # ticks never go below what a previous run already stored
        ticker.advance_to(await service.latest_tick())
        gate = await service.ensure(settings.default_gate, tick=ticker())
        await session.commit()
    logger.info("Default gate %s ready (rate %s, origin %s)", gate.name, gate.rate, gate.origin_url)


@app.on_event("shutdown")
async def shutdown() -> None:
    await get_origin_client().close()


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/gates", status_code=201)
async def create_gate(
    body: CreateGateRequest,
    x_admin_secret: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
    now: int = Depends(current_tick),
):
    if x_admin_secret != settings.admin_secret.get_secret_value():
        raise HTTPException(status_code=403, detail="Invalid secret")
    service = GateService(session)
    try:
        await service.create(
            body.name,
            body.rate,
            tick=body.tick if body.tick is not None else now,
            origin_url=body.origin_url,
            relay_failure=body.relay_failure,
        )
    except InvalidPolicy as exc:
        raise HTTPException(status_code=400, detail=exc.to_dict()) from exc
    except GateExists as exc:
        raise HTTPException(status_code=409, detail=exc.to_dict()) from exc
    await session.commit()
    status = await service.status(body.name)
    return status.to_dict()


@app.get("/gates/{name}")
async def gate_status(name: str, session: AsyncSession = Depends(get_session)):
    try:
        status = await GateService(session).status(name)
    except GateNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.to_dict()) from exc
    return status.to_dict()


@app.post("/gates/{name}/forward")
async def forward(
    name: str,
    body: ForwardRequest,
    session: AsyncSession = Depends(get_session),
    client: OriginClient = Depends(get_origin_client),
    now: int = Depends(current_tick),
):
    try:
        payload = base64.b64decode(body.payload, validate=True)
    except binascii.Error as exc:
        raise HTTPException(status_code=400, detail="payload must be base64") from exc
    service = ProxyService(session, client=client)
    try:
        result = await service.forward(name, body.sender, payload, tick=now, source=body.source)
    except GateNotFound as exc:
        raise HTTPException(status_code=404, detail=exc.to_dict()) from exc
    except RateLimitExceeded as exc:
        raise HTTPException(status_code=429, detail=exc.to_dict()) from exc
    except RelayError as exc:
        raise HTTPException(status_code=502, detail=exc.to_dict()) from exc
    return {
        "admitted": True,
        "relayed": result.relayed,
        "notification_id": result.notification.notification_id if result.notification else None,
        "tick": result.tick,
        "state": {
            "last_tick": result.state.last_tick,
            "count_in_tick": result.state.count_in_tick,
        },
    }


__all__ = ["app"]
