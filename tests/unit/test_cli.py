"""Tests for the command line entry point and console rendering."""

from argparse import Namespace
from unittest.mock import AsyncMock

import aiohttp
import pytest
from rich.console import Console

from src import main as cli
from src.application.cache import KeyedCache
from src.application.ui import ConsoleRenderer
from src.domain import PaginationEnvelope
from src.infrastructure.ledger_client import LedgerClient
from src.infrastructure.metadata import IpfsMetadataResolver
from tests.fakes import ALICE, FakeChain


class TestParser:
    def test_history_defaults(self) -> None:
        args = cli.build_parser().parse_args(["history", "7"])
        assert args.command == "history"
        assert args.token_id == 7
        assert args.page == 1
        assert args.page_size is None

    def test_history_paging_flags(self) -> None:
        args = cli.build_parser().parse_args(["history", "7", "--page", "3", "--page-size", "20"])
        assert (args.page, args.page_size) == (3, 20)

    def test_owned_requires_address(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["owned"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestRenderer:
    def _renderer(self) -> ConsoleRenderer:
        return ConsoleRenderer(Console(record=True, width=160))

    def test_empty_history(self) -> None:
        renderer = self._renderer()
        renderer.history(PaginationEnvelope(items=[], total=0, page=1, page_size=10, page_count=0), 4)

        output = renderer.console.export_text()
        assert "Sales history for token 4" in output
        assert "No sales on this page" in output

    def test_error(self) -> None:
        renderer = self._renderer()
        renderer.error("Item not listed")
        assert "Item not listed" in renderer.console.export_text()


class TestRun:
    @pytest.fixture(autouse=True)
    def offline_gateway(self, monkeypatch) -> None:
        monkeypatch.setattr(
            IpfsMetadataResolver, "_download", AsyncMock(side_effect=aiohttp.ClientConnectionError("offline"))
        )

    async def test_owned_listing(self, monkeypatch, settings, client: LedgerClient, chain: FakeChain, capsys) -> None:
        chain.add_token(ALICE)
        monkeypatch.setattr(cli, "build_client", lambda settings, cache: client)

        code = await cli.run(Namespace(command="owned", address=ALICE), settings)

        assert code == 0
        assert "Owned by" in capsys.readouterr().out

    async def test_missing_token_exits_nonzero(
        self, monkeypatch, settings, client: LedgerClient, capsys
    ) -> None:
        monkeypatch.setattr(cli, "build_client", lambda settings, cache: client)

        code = await cli.run(Namespace(command="info", token_id=99), settings)

        assert code == 1
        assert "99" in capsys.readouterr().out

    async def test_history_command(self, monkeypatch, settings, client: LedgerClient, chain: FakeChain) -> None:
        token_id = chain.add_token(ALICE)
        chain.record_sale(token_id, ALICE, "0x" + "b2" * 20, 10**18)
        monkeypatch.setattr(cli, "build_client", lambda settings, cache: client)

        code = await cli.run(Namespace(command="history", token_id=token_id, page=1, page_size=None), settings)

        assert code == 0
        assert chain.log_queries

    async def test_malformed_address_exits_nonzero(
        self, monkeypatch, settings, client: LedgerClient, capsys
    ) -> None:
        monkeypatch.setattr(cli, "build_client", lambda settings, cache: client)

        code = await cli.run(Namespace(command="owned", address="not-an-address"), settings)

        assert code == 1
        assert "Invalid input" in capsys.readouterr().out

    async def test_page_zero_exits_nonzero(self, monkeypatch, settings, client: LedgerClient, chain: FakeChain) -> None:
        monkeypatch.setattr(cli, "build_client", lambda settings, cache: client)

        code = await cli.run(Namespace(command="history", token_id=1, page=0, page_size=None), settings)

        assert code == 1
        assert chain.log_queries == []

    async def test_client_and_resolver_share_one_cache(
        self, monkeypatch, settings, client: LedgerClient, chain: FakeChain
    ) -> None:
        chain.add_token(ALICE)
        seen = {}
        resolvers = []

        def fake_build_client(settings, cache):
            seen["cache"] = cache
            return client

        class RecordingResolver(IpfsMetadataResolver):
            def __init__(self, *args, **kwargs) -> None:
                super().__init__(*args, **kwargs)
                resolvers.append(self)

        monkeypatch.setattr(cli, "build_client", fake_build_client)
        monkeypatch.setattr(cli, "IpfsMetadataResolver", RecordingResolver)

        assert await cli.run(Namespace(command="owned", address=ALICE), settings) == 0
        assert resolvers[0].cache is seen["cache"]


class TestBuildClient:
    def test_keeps_the_given_cache(self, settings) -> None:
        cache = KeyedCache()
        client = cli.build_client(settings, cache)
        assert client.cache is cache
        assert not client.connection.wallet.signer_available
