"""Frame encoding for events pushed over WebSocket connections."""

from __future__ import annotations

from typing import Any

import orjson

from ..auction.models import RelayEvent, envelope


def encode_frame(event: RelayEvent) -> str:
    return orjson.dumps(envelope(event)).decode("utf-8")


def decode_frame(raw: str | bytes) -> dict[str, Any]:
    frame = orjson.loads(raw)
    if not isinstance(frame, dict):
        raise ValueError("frame must be a JSON object")
    return frame
