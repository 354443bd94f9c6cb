"""Uniform response envelope."""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """
    Every endpoint responds with this shape.

    `data` is omitted for operations that return nothing.
    """
    success: bool = True
    message: str
    data: T | None = None


def ok(message: str, data=None) -> dict:
    """Build a success envelope payload."""
    return {"success": True, "message": message, "data": data}
