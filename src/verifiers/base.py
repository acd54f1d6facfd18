"""Verifier contract shared by every transport adapter."""

import inspect
from typing import Awaitable, Callable, Mapping, Optional, Union

from src.events.models import VerifyResult

Headers = Mapping[str, Optional[str]]
Verifier = Callable[
    [Union[bytes, str], Headers],
    Union[VerifyResult, Awaitable[VerifyResult]],
]


def normalize_headers(headers: Optional[Mapping[str, Optional[str]]]) -> dict[str, Optional[str]]:
    """Lower-case header names so lookups are case-insensitive."""
    if not headers:
        return {}
    return {str(key).lower(): value for key, value in headers.items()}


def to_bytes(raw_body: Union[bytes, str]) -> bytes:
    if isinstance(raw_body, str):
        return raw_body.encode("utf-8")
    return bytes(raw_body)


async def run_verifier(
    verifier: Verifier,
    raw_body: Union[bytes, str],
    headers: Headers,
) -> VerifyResult:
    """Call a sync or async verifier and return its result."""
    result = verifier(raw_body, headers)
    if inspect.isawaitable(result):
        result = await result
    if not isinstance(result, VerifyResult):
        raise TypeError(f"Verifier returned {type(result).__name__}, expected VerifyResult")
    return result
