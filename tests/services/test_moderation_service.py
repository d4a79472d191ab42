from datetime import timedelta

import pytest

from modbot.core.errors import ActionError, ChannelNotFoundError, ModerationLogNotFoundError
from modbot.db.time import as_utc, utcnow
from modbot.schemas import User
from modbot.services import ModerationService
from tests.conftest import condition, logical, make_cast, make_channel, make_user

POWER_BADGE = condition("userDoesNotHoldPowerBadge")
FOLLOWED_BY_JTGI = condition("userIsNotFollowedBy", users=[{"value": 2, "label": "jtgi"}])
SPAM = condition("containsText", searchText="spam")


@pytest.fixture
def service(repository, providers, cache) -> ModerationService:
    return ModerationService(repository, providers, cache, execute_on_protocol=True)


@pytest.fixture
def no_badges(providers):
    providers.neynar.power_badge_fids.return_value = []
    providers.neynar.fetch_bulk_users.return_value = [
        User(fid=2, username="jtgi", viewer_context={"following": False, "followed_by": False})
    ]
    return providers


@pytest.mark.asyncio
async def test_bypassed_user_is_approved_without_checks(service, providers, repository):
    channel = make_channel(
        inclusion=logical("OR", POWER_BADGE, FOLLOWED_BY_JTGI),
        excludeUsernames=[{"value": 100, "label": "alice"}],
    )

    logs = await service.validate_cast(channel, make_cast())

    assert [log.action for log in logs] == ["like"]
    assert logs[0].reason == "@alice is in the bypass list."
    providers.neynar.power_badge_fids.assert_not_awaited()
    providers.neynar.fetch_bulk_users.assert_not_awaited()
    stored = repository.list_logs("base")
    assert [log.id for log in stored] == [logs[0].id]


@pytest.mark.asyncio
async def test_channel_owner_is_approved(service, providers):
    providers.warpcast.get_channel_owner.return_value = 100
    channel = make_channel(inclusion=logical("OR", POWER_BADGE))

    logs = await service.validate_user(channel, make_user())

    assert logs[0].action == "like"
    assert logs[0].reason == "@alice is the channel owner"
    providers.neynar.power_badge_fids.assert_not_awaited()
    providers.warpcast.invite_member.assert_awaited_once_with("base", 100)


@pytest.mark.asyncio
async def test_cohosts_bypass_when_enabled(service, providers, repository):
    channel = make_channel(inclusion=logical("OR", POWER_BADGE), excludeCohosts=True)
    repository.upsert_channel(channel)
    role = repository.upsert_role("base", "Cohost", is_cohost_role=True)
    repository.upsert_delegate(role, fid=100, username="alice", avatar_url=None)

    logs = await service.validate_cast(channel, make_cast())

    assert logs[0].action == "like"
    assert logs[0].reason == "@alice is a cohost"


@pytest.mark.asyncio
async def test_empty_inclusion_hides_quietly(service, providers):
    logs = await service.validate_cast(make_channel(), make_cast())

    assert [log.action for log in logs] == ["hideQuietly"]
    assert logs[0].reason == "No automated curation rules configured."
    providers.warpcast.hide_cast.assert_awaited_once_with("0xcast")


@pytest.mark.asyncio
async def test_failed_inclusion_lists_every_failed_check_on_casts(service, no_badges):
    channel = make_channel(inclusion=logical("OR", POWER_BADGE, FOLLOWED_BY_JTGI))

    logs = await service.validate_cast(channel, make_cast())

    assert [log.action for log in logs] == ["hideQuietly"]
    assert logs[0].reason == (
        "Failed all checks: User does not hold a power badge, @alice is not followed by @jtgi"
    )
    assert logs[0].rule == "{}"
    no_badges.warpcast.hide_cast.assert_awaited_once_with("0xcast")


@pytest.mark.asyncio
async def test_join_requests_short_circuit_or(service, providers):
    providers.neynar.power_badge_fids.return_value = [100]
    channel = make_channel(inclusion=logical("OR", POWER_BADGE, FOLLOWED_BY_JTGI))

    logs = await service.validate_user(channel, make_user())

    assert [log.action for log in logs] == ["like"]
    assert logs[0].reason == "User holds a power badge"
    assert '"name":"userDoesNotHoldPowerBadge"' in logs[0].rule
    providers.neynar.fetch_bulk_users.assert_not_awaited()
    providers.warpcast.invite_member.assert_awaited_once_with("base", 100)


@pytest.mark.asyncio
async def test_exclusion_vetoes_before_inclusion(service, providers):
    channel = make_channel(
        inclusion=logical("OR", POWER_BADGE),
        exclusion=logical("OR", SPAM),
        exclusion_actions=[{"type": "hideQuietly"}, {"type": "cooldown", "args": {"duration": 2}}],
    )

    logs = await service.validate_cast(channel, make_cast("buy spam now"))

    assert [log.action for log in logs] == ["hideQuietly", "cooldown"]
    assert all(log.reason == 'Cast contains "spam"' for log in logs)
    providers.neynar.power_badge_fids.assert_not_awaited()


@pytest.mark.asyncio
async def test_exclusion_respects_rule_set_target(service, providers):
    providers.neynar.power_badge_fids.return_value = [100]
    channel = make_channel(
        inclusion=logical("OR", POWER_BADGE),
        exclusionRuleSet={
            "target": "reply",
            "rule": logical("OR", SPAM),
            "actions": [{"type": "hideQuietly"}],
        },
    )

    logs = await service.validate_cast(channel, make_cast("spam but root"))

    assert [log.action for log in logs] == ["like"]


@pytest.mark.asyncio
async def test_inclusion_ignores_rule_set_target_and_active_flag(service, providers):
    providers.neynar.power_badge_fids.return_value = []
    channel = make_channel(
        inclusionRuleSet={
            "target": "reply",
            "active": False,
            "rule": logical("OR", POWER_BADGE),
            "actions": [{"type": "like"}],
        },
    )

    logs = await service.validate_cast(channel, make_cast("root cast"))

    assert [log.action for log in logs] == ["hideQuietly"]
    providers.neynar.power_badge_fids.assert_awaited()


@pytest.mark.asyncio
async def test_muted_user_is_hidden(service, providers, repository):
    repository.upsert_cooldown("base", 100, expires_at=None)
    channel = make_channel(inclusion=logical("OR", POWER_BADGE))

    logs = await service.validate_cast(channel, make_cast())

    assert [log.action for log in logs] == ["hideQuietly"]
    assert logs[0].reason == "@alice is currently muted"
    providers.neynar.power_badge_fids.assert_not_awaited()


@pytest.mark.asyncio
async def test_user_in_cooldown_is_hidden_until_expiry(service, repository):
    expires_at = utcnow() + timedelta(hours=1)
    repository.upsert_cooldown("base", 100, expires_at=expires_at)
    channel = make_channel(inclusion=logical("OR", condition("alwaysInclude")))

    logs = await service.validate_cast(channel, make_cast())

    assert logs[0].action == "hideQuietly"
    assert logs[0].reason.startswith("@alice is in cooldown until ")


@pytest.mark.asyncio
async def test_expired_cooldown_is_ignored(service, repository):
    repository.upsert_cooldown("base", 100, expires_at=utcnow() - timedelta(minutes=1))
    channel = make_channel(inclusion=logical("OR", condition("alwaysInclude")))

    logs = await service.validate_cast(channel, make_cast())

    assert logs[0].action == "like"


@pytest.mark.asyncio
async def test_cooldowns_do_not_apply_to_join_requests(service, providers, repository):
    repository.upsert_cooldown("base", 100, expires_at=None)
    channel = make_channel(inclusion=logical("OR", condition("alwaysInclude")))

    logs = await service.validate_user(channel, make_user())

    assert logs[0].action == "like"


@pytest.mark.asyncio
async def test_slow_mode_starts_cooldown_after_inclusion(service, repository):
    channel = make_channel(inclusion=logical("OR", condition("alwaysInclude")), slowModeHours=3)

    await service.validate_cast(channel, make_cast())

    cooldown = repository.find_cooldown("base", 100)
    assert cooldown is not None and cooldown.active
    remaining = as_utc(cooldown.expires_at) - utcnow()
    assert timedelta(hours=2, minutes=59) < remaining <= timedelta(hours=3)


@pytest.mark.asyncio
async def test_simulation_matches_real_run_without_side_effects(service, no_badges, repository):
    channel = make_channel(inclusion=logical("OR", POWER_BADGE, FOLLOWED_BY_JTGI))
    cast = make_cast()

    simulated = await service.validate_cast(channel, cast, simulation=True)

    assert simulated[0].id.startswith("sim-")
    assert simulated[0].simulated
    assert repository.list_logs("base") == []
    no_badges.warpcast.hide_cast.assert_not_awaited()

    real = await service.validate_cast(channel, cast)

    ignored = {"id", "created_at", "updated_at"}
    assert simulated[0].model_dump(exclude=ignored) == real[0].model_dump(exclude=ignored)


@pytest.mark.asyncio
async def test_manual_approval_keeps_logs_when_simulating(service, repository):
    channel = make_channel(inclusion=logical("OR", condition("manuallyApprove")))
    service.log_moderation_action("base", "hideQuietly", "earlier", make_user())

    logs = await service.validate_user(channel, make_user(), simulation=True)

    assert logs[0].reason == "Need manual approval by channel moderators"
    assert len(repository.list_logs("base")) == 1


@pytest.mark.asyncio
async def test_action_failure_propagates_and_skips_remaining(service, providers, mocker):
    create_log = mocker.spy(service.repository, "create_moderation_log")
    channel = make_channel(
        inclusion=logical("OR", condition("alwaysInclude")),
        inclusion_actions=[
            {"type": "like"},
            {"type": "grantRole", "args": {"role": "missing"}},
            {"type": "mute"},
        ],
    )

    with pytest.raises(ActionError, match="Role missing not found"):
        await service.validate_user(channel, make_user())

    providers.warpcast.invite_member.assert_awaited_once()
    assert create_log.call_count == 1


def test_log_falls_back_to_fid_for_username(service):
    log = service.log_moderation_action(
        "base", "like", "ok", User(fid=7), simulation=True
    )

    assert log.affected_username == "7"
    assert log.affected_user_fid == "7"
    assert log.cast_hash == ""
    assert log.actor == "system"


@pytest.mark.asyncio
async def test_approve_log_flips_hidden_cast(service, providers, repository):
    repository.upsert_channel(make_channel())
    hidden = service.log_moderation_action(
        "base", "hideQuietly", "No rules", make_user(), cast=make_cast()
    )

    approved = await service.approve_log("base", hidden.id, "42")

    assert approved.action == "like"
    assert approved.actor == "42"
    providers.warpcast.unhide_cast.assert_awaited_once_with("0xcast")
    providers.warpcast.invite_member.assert_not_awaited()


@pytest.mark.asyncio
async def test_approve_log_invites_rejected_joiner(service, providers, repository):
    repository.upsert_channel(make_channel())
    hidden = service.log_moderation_action("base", "hideQuietly", "No rules", make_user())

    await service.approve_log("base", hidden.id, "42")

    providers.warpcast.invite_member.assert_awaited_once_with("base", 100)


@pytest.mark.asyncio
async def test_approve_log_rejects_other_decisions(service, repository):
    repository.upsert_channel(make_channel())
    liked = service.log_moderation_action("base", "like", "ok", make_user())

    with pytest.raises(ActionError):
        await service.approve_log("base", liked.id, "42")


@pytest.mark.asyncio
async def test_approve_log_requires_known_channel_and_log(service, repository):
    with pytest.raises(ChannelNotFoundError):
        await service.approve_log("nope", "x", "42")

    repository.upsert_channel(make_channel())
    with pytest.raises(ModerationLogNotFoundError):
        await service.approve_log("base", "x", "42")
