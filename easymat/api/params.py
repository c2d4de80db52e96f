"""Shared path/query parameter types for the routers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Path

# Ids are 64-bit integer columns; larger values never reach the store.
MAX_ID = 2**63 - 1

ResourceId = Annotated[int, Path(ge=1, le=MAX_ID)]
