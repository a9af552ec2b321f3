"""
Infrastructure Layer: Connection Manager
Binds the token and marketplace contracts to a signing or read-only session.
"""
from dataclasses import dataclass
from typing import Any, Callable, Optional, cast

import structlog
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.contract import AsyncContract
from web3.middleware import SignAndSendRawMiddlewareBuilder

from src.application.ports import IWalletSession
from src.domain import Address, SigningUnavailable
from src.infrastructure.abi import MARKETPLACE_ABI, TOKEN_ABI
from src.infrastructure.config import Settings
from src.infrastructure.wallet import WalletSession

logger = structlog.get_logger()

Web3Factory = Callable[[str], AsyncWeb3]


def _default_web3(rpc_url: str) -> AsyncWeb3:
    return AsyncWeb3(AsyncHTTPProvider(rpc_url))


@dataclass(frozen=True)
class ContractHandles:
    token: AsyncContract
    marketplace: AsyncContract


@dataclass(frozen=True)
class LedgerSession:
    """Contracts bound to one wallet session"""
    web3: AsyncWeb3
    contracts: ContractHandles
    has_signer: bool
    account: Optional[Address]

    @property
    def token_address(self) -> str:
        return str(self.contracts.token.address)

    @property
    def marketplace_address(self) -> str:
        return str(self.contracts.marketplace.address)


class ConnectionManager:
    """
    Owns the web3 connection for one caller context.
    The bound session is memoized until the wallet changes.
    """

    def __init__(
        self,
        settings: Settings,
        wallet: Optional[IWalletSession] = None,
        web3_factory: Optional[Web3Factory] = None,
    ) -> None:
        self.settings = settings
        self._wallet: IWalletSession = wallet or WalletSession.read_only()
        self._web3_factory = web3_factory or _default_web3
        self._session: Optional[LedgerSession] = None

    @property
    def wallet(self) -> IWalletSession:
        return self._wallet

    def get_session(self) -> LedgerSession:
        if self._session is None:
            self._session = self._bind()
        return self._session

    def require_signer(self) -> LedgerSession:
        """Signing session, or SigningUnavailable before touching the network."""
        session = self.get_session()
        if not session.has_signer or session.account is None:
            raise SigningUnavailable()
        return session

    def switch_wallet(self, wallet: IWalletSession) -> None:
        logger.info("wallet_switched", account=wallet.account, signer=wallet.signer_available)
        self._wallet = wallet
        self._session = None

    async def close(self) -> None:
        if self._session is None:
            return
        provider = self._session.web3.provider
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
        self._session = None

    def _bind(self) -> LedgerSession:
        web3 = self._web3_factory(self.settings.rpc_url)
        has_signer = self._wallet.signer_available

        signer = getattr(self._wallet, "signer", None)
        if has_signer and signer is not None:
            web3.middleware_onion.inject(
                cast(Any, SignAndSendRawMiddlewareBuilder.build(signer)), layer=0
            )
            web3.eth.default_account = signer.address

        token = web3.eth.contract(
            address=AsyncWeb3.to_checksum_address(self.settings.token_contract_address),
            abi=TOKEN_ABI,
        )
        marketplace = web3.eth.contract(
            address=AsyncWeb3.to_checksum_address(self.settings.marketplace_contract_address),
            abi=MARKETPLACE_ABI,
        )

        logger.info(
            "contracts_bound",
            rpc_url=self.settings.rpc_url,
            account=self._wallet.account,
            read_only=not has_signer,
        )
        return LedgerSession(
            web3=web3,
            contracts=ContractHandles(token=token, marketplace=marketplace),
            has_signer=has_signer,
            account=self._wallet.account,
        )
