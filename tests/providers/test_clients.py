import json

import httpx
import pytest

from modbot.providers import ProviderError, ProviderTimeoutError, ProviderUnavailableError
from modbot.providers.neynar import NeynarClient
from modbot.providers.onchain import OnchainClient, format_hash, parse_units
from modbot.providers.reputation import AirstackClient, IcebreakerClient, OpenRankClient
from modbot.providers.warpcast import WarpcastClient
from modbot.providers.webhook import RuleWebhookClient

WALLET = "0x" + "ab" * 20
CONTRACT = "0x" + "cd" * 20


def neynar(handler) -> NeynarClient:
    return NeynarClient(
        api_key="key",
        base_url="https://neynar.test",
        timeout_seconds=1,
        transport=httpx.MockTransport(handler),
    )


def warpcast(handler) -> WarpcastClient:
    return WarpcastClient(
        token="secret",
        base_url="https://warpcast.test",
        timeout_seconds=1,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_neynar_bulk_users_with_viewer_context():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "users": [
                    {"fid": 2, "username": "jtgi", "viewer_context": {"following": True, "followed_by": False}},
                    {"fid": 3, "username": "dwr", "unknown_field": "ignored"},
                ]
            },
        )

    users = await neynar(handler).fetch_bulk_users([2, 3], viewer_fid=100)

    assert [u.username for u in users] == ["jtgi", "dwr"]
    assert users[0].viewer_context.following is True
    request = seen[0]
    assert request.url.path == "/v2/farcaster/user/bulk"
    assert request.url.params["fids"] == "2,3"
    assert request.url.params["viewer_fid"] == "100"
    assert request.headers["api_key"] == "key"


@pytest.mark.asyncio
async def test_neynar_skips_request_for_no_fids():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert await neynar(handler).fetch_bulk_users([]) == []


@pytest.mark.asyncio
async def test_neynar_power_badges_and_subscribers():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("power_lite"):
            return httpx.Response(200, json={"result": {"fids": ["1", 2]}})
        return httpx.Response(
            200,
            json={"subscribers": [{"user": {"fid": 9}}, {"object": "subscriber"}]},
        )

    client = neynar(handler)

    assert await client.power_badge_fids() == [1, 2]
    assert await client.subscriber_fids(5) == [9]


@pytest.mark.asyncio
async def test_neynar_missing_cast_is_an_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"result": {"casts": []}})

    with pytest.raises(ProviderError, match="Cast not found: 0xgone"):
        await neynar(handler).fetch_cast("0xgone")


@pytest.mark.asyncio
async def test_warpcast_owner_and_moderation_calls():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "GET":
            return httpx.Response(200, json={"result": {"channel": {"leadFid": 5, "moderatorFids": [6]}}})
        return httpx.Response(200, json={"result": {"success": True}})

    client = warpcast(handler)

    assert await client.get_channel_owner("base") == 5
    await client.hide_cast("0xcast")

    hide = requests[-1]
    assert hide.url.path == "/fc/moderated-casts"
    assert json.loads(hide.content) == {"castHash": "0xcast", "action": "hide"}
    assert hide.headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_client_errors_raise_with_status():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "not found"})

    with pytest.raises(ProviderError) as excinfo:
        await warpcast(handler).get_channel("nope")

    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_timeouts_are_translated():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(ProviderTimeoutError):
        await warpcast(handler).is_channel_member("base", 1)


@pytest.mark.asyncio
async def test_circuit_breaker_opens_after_repeated_failures():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(502)

    client = warpcast(handler)
    for _ in range(5):
        with pytest.raises(ProviderError):
            await client.is_following_channel("base", 1)

    with pytest.raises(ProviderUnavailableError):
        await client.is_following_channel("base", 1)
    assert calls == 5


@pytest.mark.asyncio
async def test_rpc_balance_of_encodes_the_call():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": hex(1500)})

    client = OnchainClient({"8453": "https://rpc.test"}, timeout_seconds=1, transport=httpx.MockTransport(handler))

    balance = await client.balance_of("8453", CONTRACT, WALLET)

    assert balance == 1500
    call = bodies[0]["params"][0]
    assert call["to"] == CONTRACT
    assert call["data"] == "0x70a08231" + "0" * 24 + "ab" * 20


@pytest.mark.asyncio
async def test_rpc_owner_of_and_reverts():
    def handler(request: httpx.Request) -> httpx.Response:
        data = json.loads(request.content)["params"][0]["data"]
        if data.startswith("0x6352211e"):
            return httpx.Response(200, json={"result": "0x" + "0" * 24 + "EF" * 20})
        return httpx.Response(200, json={"error": {"message": "execution reverted"}})

    client = OnchainClient({"1": "https://rpc.test"}, timeout_seconds=1, transport=httpx.MockTransport(handler))

    assert await client.owner_of("1", CONTRACT, 3) == "0x" + "ef" * 20
    with pytest.raises(ProviderError, match="execution reverted"):
        await client.decimals("1", CONTRACT)


@pytest.mark.asyncio
async def test_rpc_unknown_chain():
    client = OnchainClient({}, timeout_seconds=1)

    with pytest.raises(ProviderError, match="No client found for chainId: 1"):
        await client.balance_of("1", CONTRACT, WALLET)


def test_token_amount_helpers():
    assert parse_units("1.5", 18) == 15 * 10**17
    assert parse_units(None, 6) == 0
    assert format_hash(CONTRACT) == "0xcdcd...cdcd"
    with pytest.raises(ValueError):
        parse_units("lots", 18)


@pytest.mark.asyncio
async def test_airstack_far_rank():
    def handler(request: httpx.Request) -> httpx.Response:
        variables = json.loads(request.content)["variables"]
        assert variables == {"identity": "fc_fid:100"}
        return httpx.Response(
            200, json={"data": {"Socials": {"Social": [{"farcasterScore": {"farRank": 42}}]}}}
        )

    client = AirstackClient(
        api_key="k", url="https://airstack.test/gql", timeout_seconds=1, transport=httpx.MockTransport(handler)
    )

    assert await client.far_rank(100) == 42


@pytest.mark.asyncio
async def test_openrank_picks_the_requested_fid():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/priority/channels/rankings/memes/fids"
        return httpx.Response(200, json={"result": [{"fid": 1, "rank": 1}, {"fid": 100, "rank": 7}]})

    client = OpenRankClient(
        api_key="k", base_url="https://openrank.test", timeout_seconds=1, transport=httpx.MockTransport(handler)
    )

    assert await client.channel_rank("memes", 100) == {"fid": 100, "rank": 7}


@pytest.mark.asyncio
async def test_icebreaker_missing_profile():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    client = IcebreakerClient(
        base_url="https://icebreaker.test/api/v1", timeout_seconds=1, transport=httpx.MockTransport(handler)
    )

    assert await client.profile_by_fid(100) is None


@pytest.mark.asyncio
async def test_rule_webhook_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("slow", request=request)

    client = RuleWebhookClient(transport=httpx.MockTransport(handler))

    with pytest.raises(ProviderTimeoutError):
        await client.post("https://hooks.test/rule", {"user": {}}, timeout=1)
