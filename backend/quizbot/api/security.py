"""Shared-secret check for requests coming from the transport gateway."""
from __future__ import annotations
import hmac
from typing import Optional

from fastapi import Header, HTTPException, status

from quizbot.core import config


def verify_transport_secret(x_transport_secret: Optional[str] = Header(default=None)) -> None:
    """No-op while TRANSPORT_SECRET is empty; otherwise the header must match."""
    expected = config.TRANSPORT_SECRET
    if not expected:
        return
    if not x_transport_secret or not hmac.compare_digest(x_transport_secret.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid transport secret")
