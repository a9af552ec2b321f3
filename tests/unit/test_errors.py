"""Tests for ledger error normalization."""

import asyncio

import aiohttp
import pytest
from web3.exceptions import ContractLogicError, TimeExhausted

from src.domain import (
    ContractRevert,
    LedgerError,
    NetworkFailure,
    NotFound,
    PendingRequestConflict,
    TokenId,
    UserRejected,
)
from src.infrastructure.errors import ledger_call, normalize_error, revert_reason


class TestRevertReason:
    def test_strips_execution_reverted_prefix(self) -> None:
        assert revert_reason("execution reverted: Item not listed") == "Item not listed"

    def test_strips_hardhat_prefix(self) -> None:
        message = "VM Exception while processing transaction: reverted with reason string 'Not owner'"
        assert revert_reason(message) == "Not owner"

    def test_collapses_whitespace(self) -> None:
        assert revert_reason("execution reverted:\n  Price\n must be > 0") == "Price must be > 0"

    def test_empty_message_uses_default(self) -> None:
        assert revert_reason("execution reverted") == "Transaction reverted"
        assert revert_reason(None) == "Transaction reverted"

    def test_truncates_long_messages(self) -> None:
        reason = revert_reason("execution reverted: " + "x" * 500)
        assert len(reason) == 120
        assert reason.endswith("...")


class TestNormalizeError:
    def test_contract_logic_error(self) -> None:
        error = normalize_error(ContractLogicError("execution reverted: Marketplace not approved"))
        assert isinstance(error, ContractRevert)
        assert error.reason == "Marketplace not approved"

    def test_user_rejected_by_code(self) -> None:
        error = normalize_error(ValueError({"code": 4001, "message": "User rejected the request."}))
        assert isinstance(error, UserRejected)

    def test_user_rejected_by_message(self) -> None:
        assert isinstance(normalize_error(RuntimeError("MetaMask: User denied transaction signature")), UserRejected)

    def test_pending_request(self) -> None:
        error = normalize_error(ValueError({"code": -32002, "message": "Request already pending"}))
        assert isinstance(error, PendingRequestConflict)

    def test_receipt_timeout(self) -> None:
        error = normalize_error(TimeExhausted("not in chain after 120 seconds"))
        assert isinstance(error, NetworkFailure)

    @pytest.mark.parametrize(
        "exc",
        [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError(), ConnectionResetError()],
    )
    def test_transport_failures(self, exc: Exception) -> None:
        error = normalize_error(exc)
        assert isinstance(error, NetworkFailure)
        assert "refused" not in error.reason

    def test_ledger_errors_pass_through(self) -> None:
        original = NotFound(TokenId(3))
        assert normalize_error(original) is original

    def test_unknown_errors_get_generic_reason(self) -> None:
        error = normalize_error(KeyError("internal detail"))
        assert type(error) is LedgerError
        assert "internal detail" not in error.reason


class TestLedgerCall:
    async def test_wraps_and_chains(self) -> None:
        raw = ContractLogicError("execution reverted: Item already listed")
        with pytest.raises(ContractRevert) as info:
            async with ledger_call("list", token_id=1):
                raise raw

        assert info.value.reason == "Item already listed"
        assert info.value.__cause__ is raw

    async def test_ledger_error_unchanged(self) -> None:
        with pytest.raises(NotFound):
            async with ledger_call("get_token"):
                raise NotFound(TokenId(1))

    async def test_success_is_transparent(self) -> None:
        async with ledger_call("noop"):
            value = 42
        assert value == 42
