"""
Infrastructure: Ledger error normalization
Maps web3/transport exceptions onto the domain error taxonomy.
"""
import asyncio
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import aiohttp
import structlog
from web3.exceptions import (
    ContractLogicError,
    ProviderConnectionError,
    TimeExhausted,
    Web3RPCError,
)

from src.domain import (
    ContractRevert,
    LedgerError,
    NetworkFailure,
    PendingRequestConflict,
    UserRejected,
)

logger = structlog.get_logger()

USER_REJECTED_CODE = 4001
PENDING_REQUEST_CODE = -32002
MAX_REASON_LENGTH = 120

_REVERT_PREFIX = re.compile(r"^(execution reverted|VM Exception while processing transaction)\s*:?\s*", re.IGNORECASE)
_CUSTOM_ERROR_PREFIX = re.compile(r"^reverted with reason string\s*", re.IGNORECASE)
_REJECTION_HINTS = ("user rejected", "user denied")


def revert_reason(message: Any) -> str:
    """Short, single-line reason from a raw revert message."""
    text = " ".join(str(message or "").split())
    text = _REVERT_PREFIX.sub("", text)
    text = _CUSTOM_ERROR_PREFIX.sub("", text).strip(" '\"")
    if not text:
        return ContractRevert.default_reason
    if len(text) > MAX_REASON_LENGTH:
        text = text[: MAX_REASON_LENGTH - 3].rstrip() + "..."
    return text


def _rpc_error_code(exc: Exception) -> Optional[int]:
    response = getattr(exc, "rpc_response", None)
    if isinstance(response, dict):
        error = response.get("error")
        if isinstance(error, dict) and isinstance(error.get("code"), int):
            return error["code"]

    code = getattr(exc, "code", None)
    if isinstance(code, int):
        return code

    for arg in exc.args:
        if isinstance(arg, dict) and isinstance(arg.get("code"), int):
            return arg["code"]
    return None


def normalize_error(exc: BaseException) -> LedgerError:
    """Translate one raw exception into a LedgerError."""
    if isinstance(exc, LedgerError):
        return exc

    if isinstance(exc, ContractLogicError):
        message = getattr(exc, "message", None) or (exc.args[0] if exc.args else "")
        return ContractRevert(revert_reason(message))

    if isinstance(exc, Exception):
        code = _rpc_error_code(exc)
        message = str(exc).lower()
        if code == USER_REJECTED_CODE or any(hint in message for hint in _REJECTION_HINTS):
            return UserRejected()
        if code == PENDING_REQUEST_CODE:
            return PendingRequestConflict()

    if isinstance(exc, TimeExhausted):
        return NetworkFailure("Timed out waiting for the transaction to be confirmed")

    if isinstance(exc, (ProviderConnectionError, aiohttp.ClientError, asyncio.TimeoutError, OSError)):
        return NetworkFailure()

    if isinstance(exc, Web3RPCError):
        return NetworkFailure("Ledger endpoint returned an error")

    return LedgerError()


@asynccontextmanager
async def ledger_call(operation: str, **context: Any) -> AsyncIterator[None]:
    """
    Wraps a remote interaction; anything raised inside leaves as a LedgerError.
    """
    try:
        yield
    except LedgerError:
        raise
    except Exception as exc:
        error = normalize_error(exc)
        logger.warning(
            "ledger_call_failed",
            operation=operation,
            error_type=type(error).__name__,
            reason=error.reason,
            raw_error=type(exc).__name__,
            **context,
        )
        raise error from exc
