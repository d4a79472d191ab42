"""Token-gating checks: ERC-20/721/1155 balances, Hypersub and fan tokens."""

from __future__ import annotations

import asyncio
from typing import Any

from modbot.providers.onchain import format_hash, parse_units

from .base import ArgSpec, CheckContext, CheckResult, CheckSet

BALANCE_TTL_SECONDS = 60 * 60 * 2
FAN_TOKEN_CHAIN_ID = "8453"

CHAIN_OPTIONS = (
    {"value": "1", "label": "Ethereum"},
    {"value": "10", "label": "Optimism"},
    {"value": "8453", "label": "Base"},
    {"value": "7777777", "label": "Zora"},
    {"value": "137", "label": "Polygon"},
)

checks = CheckSet()


def _token_args(name_placeholder: str, *, with_token_id: bool = False) -> dict[str, ArgSpec]:
    args = {
        "chainId": ArgSpec(type="select", friendly_name="Chain", required=True, options=CHAIN_OPTIONS),
        "contractAddress": ArgSpec(
            type="string",
            friendly_name="Contract Address",
            required=True,
            pattern="0x[a-fA-F0-9]{40}",
            placeholder="0xdead...",
        ),
        "name": ArgSpec(
            type="string",
            friendly_name="Token Name",
            required=True,
            placeholder=name_placeholder,
            description="The name of the token for display in the UI.",
        ),
    }
    if with_token_id:
        args["tokenId"] = ArgSpec(
            type="string",
            friendly_name="Token ID (optional)",
            placeholder="Any Token",
            pattern="[0-9]+",
            description="Optionally check for a specific token id, if left blank any token is valid.",
        )
    return args


def _label(args: dict[str, Any]) -> str:
    return args.get("name") or format_hash(str(args["contractAddress"]))


async def _cached_balance(
    ctx: CheckContext,
    key: str,
    chain_id: str,
    contract: str,
    address: str,
    *,
    standard: str = "erc20",
    token_id: int | None = None,
) -> int:
    async def fetch() -> int:
        return await ctx.providers.onchain.balance_of(
            chain_id, contract, address, standard=standard, token_id=token_id  # type: ignore[arg-type]
        )

    return int(await ctx.cache.get_set(key, BALANCE_TTL_SECONDS, fetch))


async def _erc20_total(ctx: CheckContext, chain_id: str, contract: str) -> int:
    balances = await asyncio.gather(
        *(
            ctx.providers.onchain.balance_of(chain_id, contract, address)
            for address in ctx.user.addresses
        )
    )
    return sum(balances)


async def _any_balance(
    ctx: CheckContext,
    chain_id: str,
    contract: str,
    *,
    prefix: str,
    standard: str = "erc20",
    token_id: int | None = None,
) -> bool:
    for address in ctx.user.addresses:
        key = f"{prefix}:{contract}:{address}" + (f":{token_id}" if token_id is not None else "")
        balance = await _cached_balance(
            ctx, key, chain_id, contract, address, standard=standard, token_id=token_id
        )
        if balance > 0:
            return True
    return False


@checks.register(
    "requiresErc20",
    friendly_name="Holds ERC-20",
    description="Check that the user holds a certain amount of ERC-20 tokens in their connected wallets.",
    inverted_description="Check for users who do hold the ERC-20",
    allow_multiple=True,
    invertable=True,
    args={
        **_token_args("e.g. $DEGEN"),
        "minBalance": ArgSpec(
            type="string",
            friendly_name="Minimum Balance (optional)",
            placeholder="Any Amount",
            description="The minimum amount of tokens the user must hold.",
        ),
    },
)
async def holds_erc20(ctx: CheckContext) -> CheckResult:
    args = ctx.args
    chain_id = str(args["chainId"])
    contract = str(args["contractAddress"])
    min_balance = args.get("minBalance")

    decimals = await ctx.providers.onchain.decimals(chain_id, contract)
    total = await _erc20_total(ctx, chain_id, contract)
    required = parse_units(min_balance, decimals)

    if total >= required and total > 0:
        return CheckResult(True, f"User holds ERC-20 ({_label(args)})")
    if min_balance:
        return CheckResult(False, f"Needs to hold {min_balance} ERC-20 ({_label(args)})")
    return CheckResult(False, f"User does not hold ERC-20 ({_label(args)})")


@checks.register(
    "requiresErc721",
    friendly_name="Holds ERC-721",
    description="Require the user holds a certain ERC-721 token",
    inverted_description="Check for users who *do* hold the ERC-721 token",
    allow_multiple=True,
    invertable=True,
    args=_token_args("e.g. BAYC NFT", with_token_id=True),
)
async def holds_erc721(ctx: CheckContext) -> CheckResult:
    args = ctx.args
    chain_id = str(args["chainId"])
    contract = str(args["contractAddress"])
    token_id = args.get("tokenId")

    if token_id not in (None, ""):

        async def fetch_owner() -> str:
            return await ctx.providers.onchain.owner_of(chain_id, contract, int(token_id))

        owner = await ctx.cache.get_set(
            f"erc721-owner:{contract}:{token_id}", BALANCE_TTL_SECONDS, fetch_owner
        )
        is_owner = any(address.lower() == owner.lower() for address in ctx.user.addresses)
    else:
        is_owner = await _any_balance(ctx, chain_id, contract, prefix="erc721-balance", standard="erc721")

    if is_owner:
        return CheckResult(True, f"User holds ERC-721 ({_label(args)})")
    return CheckResult(False, f"User does not hold ERC-721 ({_label(args)})")


@checks.register(
    "requiresErc1155",
    friendly_name="Holds ERC-1155",
    description="Require the user holds a certain ERC-1155 token",
    inverted_description="Check for users who *do* hold the ERC-1155 token",
    allow_multiple=True,
    invertable=True,
    args=_token_args("e.g. Rocks NFT", with_token_id=True),
)
async def holds_erc1155(ctx: CheckContext) -> CheckResult:
    """Any token of the collection via the NFT index, or one token id on chain."""
    args = ctx.args
    chain_id = str(args["chainId"])
    contract = str(args["contractAddress"])
    token_id = args.get("tokenId")

    if token_id in (None, ""):
        count = await ctx.providers.simplehash.nft_count(
            wallets=ctx.user.addresses,
            contract_address=contract,
            chain_id=chain_id,
        )
        if count > 0:
            return CheckResult(True, f"User holds ERC-1155 ({_label(args)})")
        return CheckResult(False, f"User does not hold ERC-1155 ({_label(args)})")

    held = await _any_balance(
        ctx,
        chain_id,
        contract,
        prefix="erc1155-balance",
        standard="erc1155",
        token_id=int(token_id),
    )
    if held:
        return CheckResult(True, f"User holds ERC-1155 ({format_hash(contract)}), Token #{token_id}")
    return CheckResult(False, f"User does not hold ERC-1155 ({format_hash(contract)}), Token #{token_id}")


@checks.register(
    "requireActiveHypersub",
    friendly_name="Subscribes on Hypersub",
    description="Check if the user has an active subscription to a hypersub.",
    allow_multiple=True,
    invertable=True,
    author="Hypersub",
    author_url="https://hypersub.withfabric.xyz",
    args=_token_args("e.g. Buoy Members"),
)
async def holds_active_hypersub(ctx: CheckContext) -> CheckResult:
    args = ctx.args
    chain_id = str(args["chainId"])
    contract = str(args["contractAddress"])

    # Uncached: expired subscriptions read as a zero balance.
    subscribed = False
    for address in ctx.user.addresses:
        if await ctx.providers.onchain.balance_of(chain_id, contract, address, standard="erc721") > 0:
            subscribed = True
            break

    if subscribed:
        return CheckResult(True, f"User holds an active hypersub ({_label(args)})")
    return CheckResult(False, f"User does not hold an active hypersub ({_label(args)})")


async def _fan_token_balance(ctx: CheckContext, contract: str, min_balance: Any) -> bool:
    decimals = await ctx.providers.onchain.decimals(FAN_TOKEN_CHAIN_ID, contract)
    total = await _erc20_total(ctx, FAN_TOKEN_CHAIN_ID, contract)
    return total >= parse_units(min_balance, decimals)


@checks.register(
    "holdsFanToken",
    friendly_name="Holds Fan Token",
    description="Check if the user holds a certain amount of a Farcaster user's fan token",
    allow_multiple=True,
    invertable=True,
    args={
        "fanToken": ArgSpec(
            type="moxieMemberFanTokenPicker",
            friendly_name="Fan Token",
            required=True,
            placeholder="Enter a username...",
        ),
        "minBalance": ArgSpec(
            type="string",
            friendly_name="Minimum Balance",
            placeholder="Any Amount",
            description="The minimum amount of fan tokens the user must hold.",
        ),
    },
)
async def holds_fan_token(ctx: CheckContext) -> CheckResult:
    fan_token = ctx.args.get("fanToken") or {}
    label = fan_token.get("label", "")
    if await _fan_token_balance(ctx, str(fan_token["value"]), ctx.args.get("minBalance")):
        return CheckResult(True, f"User holds @{label}'s Fan Token")
    return CheckResult(False, f"User does not hold enough of @{label}'s Fan Token")


@checks.register(
    "holdsChannelFanToken",
    friendly_name="Holds Channel Fan Token",
    description="Check if the user holds a certain amount of your channel's fan token",
    invertable=True,
    args={
        "contractAddress": ArgSpec(
            type="string",
            friendly_name="Fan Token Contract",
            required=True,
            pattern="0x[a-fA-F0-9]{40}",
            missing_message="Your channel doesn't have a Fan Token yet. Contact /airstack",
        ),
        "minBalance": ArgSpec(
            type="string",
            friendly_name="Minimum Balance",
            placeholder="Any Amount",
            description="The minimum amount of fan tokens the user must hold.",
        ),
    },
)
async def holds_channel_fan_token(ctx: CheckContext) -> CheckResult:
    contract = str(ctx.args["contractAddress"])
    if await _fan_token_balance(ctx, contract, ctx.args.get("minBalance")):
        return CheckResult(True, f"Holds /{ctx.channel.id} Fan Token")
    return CheckResult(False, f"Does not hold enough /{ctx.channel.id} Fan Token")
