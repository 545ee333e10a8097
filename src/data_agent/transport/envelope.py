"""
Envelope framing — decode inbound frames, encode outbound ones, and build
the oversize substitute.
"""

import json
import logging
from typing import Any, Optional, Union

from data_agent.models.envelope import Envelope

logger = logging.getLogger(__name__)


def parse_envelope(raw: Union[str, bytes]) -> Optional[Envelope]:
    """Decode one inbound frame. Returns None if it is not a valid envelope."""
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
        if not isinstance(data, dict):
            return None
        return Envelope.model_validate(data)
    except Exception as e:
        logger.warning(f"Dropping undecodable frame: {e}")
        return None


def encode_envelope(envelope: Union[Envelope, dict[str, Any]]) -> str:
    if isinstance(envelope, Envelope):
        return envelope.dumps()
    return json.dumps(envelope, ensure_ascii=False, separators=(",", ":"), default=str)


def build_oversize_envelope(envelope: Envelope, size: int, max_size: int) -> Envelope:
    """Same id/type/from/to as ``envelope``, payload replaced by a size diagnostic."""
    size_mb = size / (1024 * 1024)
    max_mb = max_size / (1024 * 1024)
    return envelope.model_copy(update={"payload": {
        "error": (
            f"Response size ({size_mb:.2f}MB) exceeds the maximum message size ({max_mb:.2f}MB). "
            "Add a LIMIT clause to your query or narrow the requested data."
        ),
        "size": size,
        "maxSize": max_size,
    }})
