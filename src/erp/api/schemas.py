"""Pydantic response schemas for the ERP bridge API."""

from pydantic import BaseModel


class SyncResultResponse(BaseModel):
    synced: int
    errors: int


class PushResultResponse(BaseModel):
    order_id: str
    status: str
    external_id: int | None = None
    skipped_lines: list[str] = []
    error: str | None = None
