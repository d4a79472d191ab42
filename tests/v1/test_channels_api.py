# tests/v1/test_channels_api.py
"""Tests for channel configuration, simulation and activity endpoints."""

import pytest
from fastapi import status

from modbot.providers import ProviderError
from tests.conftest import condition, logical, make_channel, make_user

pytestmark = pytest.mark.usefixtures("override_clients")

BASE_URL = "/api/v1/channels"


def config_body(**kwargs):
    return make_channel(**kwargs).model_dump(mode="json", by_alias=True)


def add_log(repository, action="hideQuietly", cast_hash=""):
    log = repository.create_moderation_log(
        channel_id="base",
        action=action,
        reason="No automated curation rules configured.",
        affected_user_fid="100",
        affected_username="alice",
        cast_hash=cast_hash,
    )
    repository.session.commit()
    return log


def test_put_then_get_channel(client) -> None:
    """Storing a configuration makes it readable."""
    body = config_body(inclusion=logical("OR", condition("alwaysInclude")), slowModeHours=2)

    response = client.put(f"{BASE_URL}/base", json=body)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["slowModeHours"] == 2

    response = client.get(f"{BASE_URL}/Base")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["id"] == "base"
    assert data["inclusionRuleSet"]["rule"]["conditions"][0]["name"] == "alwaysInclude"


def test_get_unknown_channel(client) -> None:
    response = client.get(f"{BASE_URL}/nope")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Channel nope is not moderated"


def test_put_rejects_mismatched_id(client) -> None:
    response = client.put(f"{BASE_URL}/memes", json=config_body())

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_put_rejects_unknown_checks(client, repository) -> None:
    """Configurations naming unregistered checks are never stored."""
    body = config_body(inclusion=logical("OR", condition("removedCheck")))

    response = client.put(f"{BASE_URL}/base", json=body)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"] == "No function for rule removedCheck"
    assert repository.find_channel("base") is None


def test_put_rejects_invalid_patterns(client, repository) -> None:
    body = config_body(
        inclusion=logical("OR", condition("alwaysInclude")),
        exclusion=logical("OR", condition("textMatchesPattern", pattern="[unclosed")),
    )

    response = client.put(f"{BASE_URL}/base", json=body)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"].startswith("Invalid pattern [unclosed")
    assert repository.find_channel("base") is None


def test_put_rejects_non_numeric_arguments(client, repository) -> None:
    body = config_body(inclusion=logical("OR", condition("airstackSocialCapitalRank", minRank="top100")))

    response = client.put(f"{BASE_URL}/base", json=body)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert "expects a whole number" in response.json()["detail"]
    assert repository.find_channel("base") is None


def test_put_rejects_misplaced_checks(client) -> None:
    body = config_body(
        inclusion=logical("OR", condition("alwaysInclude")),
        exclusion=logical("OR", condition("alwaysInclude")),
    )

    response = client.put(f"{BASE_URL}/base", json=body)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert "can only be used in inclusion rules" in response.json()["detail"]


def test_simulate_stored_configuration(client, providers, repository) -> None:
    """Simulation reports the decision without acting or persisting it."""
    repository.upsert_channel(make_channel(inclusion=logical("OR", condition("userFidInRange", maxFid=50))))
    providers.neynar.get_user.return_value = make_user()

    response = client.post(f"{BASE_URL}/base/simulate", json={"fid": 100})

    assert response.status_code == status.HTTP_200_OK
    logs = response.json()["logs"]
    assert [log["action"] for log in logs] == ["like"]
    assert logs[0]["reason"] == "FID #100 is greater than 50"
    assert logs[0]["id"].startswith("sim-")
    assert repository.list_logs("base") == []
    providers.warpcast.invite_member.assert_not_awaited()


def test_simulate_unsaved_configuration_with_cast(client, providers) -> None:
    providers.neynar.get_user.return_value = make_user()
    body = {
        "fid": 100,
        "cast": {"hash": "0xdraft", "text": "buy spam now", "author": {"fid": 100}},
        "config": config_body(
            inclusion=logical("OR", condition("alwaysInclude")),
            exclusion=logical("OR", condition("containsText", searchText="spam")),
        ),
    }

    response = client.post(f"{BASE_URL}/base/simulate", json=body)

    assert response.status_code == status.HTTP_200_OK
    log = response.json()["logs"][0]
    assert log["action"] == "hideQuietly"
    assert log["reason"] == 'Cast contains "spam"'
    assert log["cast_hash"] == "0xdraft"
    assert log["affected_username"] == "alice"
    providers.warpcast.hide_cast.assert_not_awaited()


def test_simulate_validates_unsaved_configuration(client, providers) -> None:
    body = {"fid": 100, "config": config_body(inclusion=logical("OR", condition("removedCheck")))}

    response = client.post(f"{BASE_URL}/base/simulate", json=body)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    providers.neynar.get_user.assert_not_awaited()


def test_simulate_unknown_channel_or_user(client, providers, repository) -> None:
    response = client.post(f"{BASE_URL}/base/simulate", json={"fid": 100})
    assert response.status_code == status.HTTP_404_NOT_FOUND

    repository.upsert_channel(make_channel(inclusion=logical("OR", condition("alwaysInclude"))))
    providers.neynar.get_user.return_value = None

    response = client.post(f"{BASE_URL}/base/simulate", json={"fid": 100})
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "User 100 not found"


def test_simulate_provider_outage(client, providers, repository) -> None:
    repository.upsert_channel(make_channel(inclusion=logical("OR", condition("alwaysInclude"))))
    providers.neynar.get_user.side_effect = ProviderError("neynar responded with 502", status_code=502)

    response = client.post(f"{BASE_URL}/base/simulate", json={"fid": 100})

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


def test_list_activity(client, repository) -> None:
    repository.upsert_channel(make_channel())
    add_log(repository)
    liked = add_log(repository, action="like")

    response = client.get(f"{BASE_URL}/base/activity", params={"action": "like"})

    assert response.status_code == status.HTTP_200_OK
    assert [log["id"] for log in response.json()] == [liked.id]


def test_list_activity_unknown_channel(client) -> None:
    response = client.get(f"{BASE_URL}/nope/activity")

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_approve_hidden_cast(client, providers, repository) -> None:
    """Approving a quietly hidden cast unhides it and records the moderator."""
    repository.upsert_channel(make_channel())
    log = add_log(repository, cast_hash="0xcast")

    response = client.post(f"{BASE_URL}/base/activity/{log.id}/approve", json={"actor": "42"})

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["action"] == "like"
    assert data["actor"] == "42"
    providers.warpcast.unhide_cast.assert_awaited_once_with("0xcast")


def test_approve_errors(client, repository) -> None:
    repository.upsert_channel(make_channel())
    liked = add_log(repository, action="like")

    missing = client.post(f"{BASE_URL}/base/activity/nope/approve", json={"actor": "42"})
    conflict = client.post(f"{BASE_URL}/base/activity/{liked.id}/approve", json={"actor": "42"})

    assert missing.status_code == status.HTTP_404_NOT_FOUND
    assert conflict.status_code == status.HTTP_409_CONFLICT
