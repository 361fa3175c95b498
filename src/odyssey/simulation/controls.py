"""Control packets delivered by the relay, one JSON object per message."""

from __future__ import annotations

import json
from typing import Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError


def reject_constant(name: str) -> float:
    """``parse_constant`` hook: NaN/Infinity are not JSON."""
    raise ValueError(f"non-JSON constant {name!r}")


def loads_strict(raw: str | bytes):
    """``json.loads`` that refuses the NaN/Infinity extensions."""
    return json.loads(raw, parse_constant=reject_constant)


class AimDelta(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    dx: float = 0.0
    dy: float = 0.0


class MoveVector(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    x: float = 0.0
    y: float = 0.0


class ControlPacket(BaseModel):
    """Controller input. Unknown keys (``type``, ``ads``, ...) are ignored."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    aim: Optional[AimDelta] = None
    move: Optional[MoveVector] = None
    fire: bool = False
    reload: bool = False  # accepted, no effect
    timestamp: Optional[float] = None
    server_ts: Optional[float] = None  # stamped by the relay, latency display only


def parse_control_packet(raw: str | bytes | dict) -> ControlPacket | None:
    """Decode one relay message. Returns None (and logs) if it is malformed."""
    try:
        data = loads_strict(raw) if isinstance(raw, (str, bytes)) else raw
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError are both ValueError
        logger.warning(f"Dropping non-JSON control packet: {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Dropping control packet that is not an object: {type(data).__name__}")
        return None
    try:
        return ControlPacket.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Dropping invalid control packet: {e.error_count()} error(s)")
        return None
