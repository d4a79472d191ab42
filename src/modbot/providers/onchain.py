"""On-chain token reads over JSON-RPC, plus the Simplehash NFT index."""

from __future__ import annotations

import re
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

import httpx

from .http import ApiClient, ClientConfig, ProviderError

TokenStandard = Literal["erc20", "erc721", "erc1155"]

# Function selectors (first four bytes of keccak256 of the signature).
SELECTOR_BALANCE_OF = "0x70a08231"  # balanceOf(address)
SELECTOR_BALANCE_OF_ID = "0x00fdd58e"  # balanceOf(address,uint256)
SELECTOR_OWNER_OF = "0x6352211e"  # ownerOf(uint256)
SELECTOR_DECIMALS = "0x313ce567"  # decimals()

CHAIN_NAMES: dict[str, str] = {
    "1": "ethereum",
    "10": "optimism",
    "137": "polygon",
    "8453": "base",
    "42161": "arbitrum",
    "7777777": "zora",
}

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(address: str) -> str:
    """Validate an EVM address and return it lower-cased."""
    if not _ADDRESS_RE.match(address):
        raise ValueError(f"Invalid address: {address}")
    return address.lower()


def format_hash(value: str) -> str:
    """Shorten an address for display, e.g. ``0x1234...abcd``."""
    if len(value) <= 10:
        return value
    return f"{value[:6]}...{value[-4:]}"


def parse_units(amount: str | int | float | None, decimals: int) -> int:
    """Convert a human readable token amount into base units."""
    try:
        value = Decimal(str(amount if amount not in (None, "") else "0"))
    except InvalidOperation as exc:
        raise ValueError(f"Invalid token amount: {amount}") from exc
    return int(value.scaleb(decimals))


def _encode_address(address: str) -> str:
    return normalize_address(address)[2:].rjust(64, "0")


def _encode_uint(value: int) -> str:
    return format(value, "064x")


def _decode_uint(result: str) -> int:
    if result in ("0x", ""):
        return 0
    return int(result, 16)


class RpcClient(ApiClient):
    """JSON-RPC client for a single chain."""

    def __init__(
        self,
        *,
        chain_id: str,
        url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            ClientConfig(name=f"rpc:{chain_id}", base_url="", timeout_seconds=timeout_seconds),
            transport=transport,
        )
        self.url = url

    async def eth_call(self, to: str, data: str) -> str:
        payload: dict[str, Any] = await self._json(
            self.RequestParams(
                method="POST",
                path=self.url,
                json_data={
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "eth_call",
                    "params": [{"to": normalize_address(to), "data": data}, "latest"],
                },
            )
        )
        if payload.get("error"):
            message = payload["error"].get("message", "execution reverted")
            raise ProviderError(f"{self.name} eth_call failed: {message}")
        return str(payload.get("result", "0x"))


class OnchainClient:
    """Token balance reads keyed by chain id."""

    def __init__(
        self,
        rpc_urls: Mapping[str, str],
        *,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._rpc_urls = dict(rpc_urls)
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._clients: dict[str, RpcClient] = {}

    def supports(self, chain_id: str) -> bool:
        return str(chain_id) in self._rpc_urls

    def _client(self, chain_id: str) -> RpcClient:
        chain_id = str(chain_id)
        url = self._rpc_urls.get(chain_id)
        if not url:
            raise ProviderError(f"No client found for chainId: {chain_id}")
        client = self._clients.get(chain_id)
        if client is None:
            client = RpcClient(
                chain_id=chain_id,
                url=url,
                timeout_seconds=self._timeout_seconds,
                transport=self._transport,
            )
            self._clients[chain_id] = client
        return client

    async def balance_of(
        self,
        chain_id: str,
        contract: str,
        address: str,
        standard: TokenStandard = "erc20",
        token_id: int | None = None,
    ) -> int:
        """Return the raw token balance of ``address``.

        ERC-20 and ERC-721 share ``balanceOf(address)``; ERC-1155 needs a
        token id.
        """
        if standard == "erc1155":
            if token_id is None:
                raise ValueError("ERC-1155 balance requires a token id")
            data = SELECTOR_BALANCE_OF_ID + _encode_address(address) + _encode_uint(int(token_id))
        else:
            data = SELECTOR_BALANCE_OF + _encode_address(address)
        result = await self._client(chain_id).eth_call(contract, data)
        return _decode_uint(result)

    async def owner_of(self, chain_id: str, contract: str, token_id: int) -> str:
        result = await self._client(chain_id).eth_call(
            contract,
            SELECTOR_OWNER_OF + _encode_uint(int(token_id)),
        )
        return "0x" + result[-40:].lower()

    async def decimals(self, chain_id: str, contract: str) -> int:
        result = await self._client(chain_id).eth_call(contract, SELECTOR_DECIMALS)
        return _decode_uint(result)

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()


class SimplehashClient(ApiClient):
    """NFT ownership index, used when no token id narrows an ERC-1155 lookup."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            ClientConfig(
                name="simplehash",
                base_url=base_url,
                timeout_seconds=timeout_seconds,
                headers={"X-API-KEY": api_key, "accept": "application/json"},
            ),
            transport=transport,
        )

    async def nft_count(self, *, wallets: list[str], contract_address: str, chain_id: str) -> int:
        chain = CHAIN_NAMES.get(str(chain_id))
        if chain is None:
            raise ProviderError(f"No chain found for chainId: {chain_id}")
        payload = await self._json(
            self.RequestParams(
                method="GET",
                path="/nfts/owners_v2",
                params={
                    "chains": chain,
                    "wallet_addresses": ",".join(wallets),
                    "contract_addresses": contract_address,
                    "count": "1",
                    "limit": "1",
                },
            )
        )
        return int(payload.get("count") or 0)
