import json
from datetime import timedelta

from modbot.db.time import utcnow
from modbot.models.cast_log import CAST_STATUS_FAILED, CAST_STATUS_PROCESSED
from modbot.schemas import SelectOption
from tests.conftest import condition, logical, make_channel


def add_log(repository, *, action="hideQuietly", fid="100", minutes_ago=0, channel_id="base"):
    return repository.create_moderation_log(
        channel_id=channel_id,
        action=action,
        reason="test",
        affected_user_fid=fid,
        affected_username="alice",
        created_at=utcnow() - timedelta(minutes=minutes_ago),
    )


def test_channel_config_round_trips(repository):
    config = make_channel(
        "Base",
        inclusion=logical("OR", condition("userFidInRange", maxFid=1000)),
        exclusion=logical("AND", condition("containsText", searchText="gm")),
        exclusion_actions=[
            {"type": "hideQuietly"},
            {
                "type": "downvote",
                "args": {"voterFid": "9", "voterUsername": "mod", "voterAvatarUrl": "https://img.test/9.png"},
            },
        ],
        slowModeHours=2,
        excludeUsernames=[{"value": 5, "label": "bob", "icon": None}],
    )

    repository.upsert_channel(config)

    assert repository.find_channel("BASE") == config
    stored = json.loads(repository.get_channel_row("base").exclusion_rule_set)
    assert stored["actions"][1]["args"]["voterFid"] == "9"


def test_upsert_replaces_configuration(repository):
    repository.upsert_channel(make_channel(slowModeHours=2))
    repository.upsert_channel(make_channel(active=False))

    stored = repository.find_channel("base")
    assert stored.active is False
    assert stored.slow_mode_hours == 0


def test_unknown_channel(repository):
    assert repository.find_channel("nope") is None
    assert repository.add_to_bypass("nope", SelectOption(value=1, label="a")) is False


def test_cohost_fids_only_include_cohost_roles(repository):
    repository.upsert_channel(make_channel())
    cohosts = repository.upsert_role("base", "Cohost", is_cohost_role=True)
    curators = repository.upsert_role("base", "Curator")
    repository.upsert_delegate(cohosts, fid=7, username="carol", avatar_url=None)
    repository.upsert_delegate(curators, fid=8, username="dave", avatar_url=None)

    assert repository.cohost_fids("base") == {7}


def test_cooldown_lifecycle(repository):
    expires_at = utcnow() + timedelta(hours=1)

    repository.upsert_cooldown("base", 100, expires_at=expires_at)
    assert repository.find_cooldown("base", 100).active is True

    assert repository.deactivate_cooldown("base", 100) is True
    assert repository.find_cooldown("base", 100).active is False
    assert repository.deactivate_cooldown("base", 101) is False


def test_logs_are_listed_newest_first(repository):
    oldest = add_log(repository, minutes_ago=10)
    liked = add_log(repository, action="like", minutes_ago=5)
    newest = add_log(repository, minutes_ago=1)
    add_log(repository, channel_id="other")

    assert [log.id for log in repository.list_logs("base")] == [newest.id, liked.id, oldest.id]
    assert [log.id for log in repository.list_logs("base", action="like")] == [liked.id]
    assert [log.id for log in repository.list_logs("base", limit=1, offset=1)] == [liked.id]


def test_get_log_is_scoped_to_channel(repository):
    log = add_log(repository)

    assert repository.get_log("base", log.id).id == log.id
    assert repository.get_log("other", log.id) is None


def test_delete_logs_for_user(repository):
    add_log(repository)
    add_log(repository)
    add_log(repository, fid="200")

    assert repository.delete_logs_for_user("base", "100") == 2
    assert [log.affected_user_fid for log in repository.list_logs("base")] == ["200"]


def test_record_cast_overwrites_status(repository):
    repository.record_cast(
        cast_hash="0x1", channel_id="base", author_fid=100, status=CAST_STATUS_FAILED, data={"error": "x"}
    )
    repository.record_cast(cast_hash="0x1", channel_id="base", author_fid=100, status=CAST_STATUS_PROCESSED)

    entry = repository.get_cast_log("0x1")
    assert entry.status == CAST_STATUS_PROCESSED
    assert entry.data == "{}"
