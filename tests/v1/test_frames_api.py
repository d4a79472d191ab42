# tests/v1/test_frames_api.py
"""Tests for the join frame endpoint."""

import pytest
from fastapi import status

from tests.conftest import condition, logical, make_channel, make_user

pytestmark = pytest.mark.usefixtures("override_clients")


def test_join_sends_invite(client, providers, repository) -> None:
    repository.upsert_channel(make_channel(inclusion=logical("OR", condition("alwaysInclude"))))
    providers.neynar.get_user.return_value = make_user()

    response = client.post("/api/v1/frames/base/join", json={"fid": 100})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Invite sent!", "action": "like"}
    providers.warpcast.invite_member.assert_awaited_once_with("base", 100)


def test_join_explains_rejection(client, providers, repository) -> None:
    repository.upsert_channel(make_channel(inclusion=logical("OR", condition("manuallyApprove"))))
    providers.neynar.get_user.return_value = make_user()

    response = client.post("/api/v1/frames/base/join", json={"fid": 100})

    assert response.json()["message"] == "Need manual approval by channel moderators"
    providers.warpcast.invite_member.assert_not_awaited()


def test_join_unknown_channel(client) -> None:
    response = client.post("/api/v1/frames/nope/join", json={"fid": 100})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "This channel is not configured to use ModBot."


def test_join_requires_a_valid_fid(client) -> None:
    response = client.post("/api/v1/frames/base/join", json={"fid": 0})

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
