"""Data access for channels, cooldowns, audit logs and intake bookkeeping."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from modbot.db.time import utcnow
from modbot.models import (
    CastLog,
    Cooldown,
    Delegate,
    Downvote,
    ModeratedChannel,
    ModerationLog,
    Role,
)
from modbot.schemas.channel import ModeratedChannelConfig, SelectOption

__all__ = ["ModerationRepository"]


def _load_json(raw: str | None) -> Any:
    return json.loads(raw) if raw else None


class ModerationRepository:
    """Thin wrapper around the moderation tables.

    Methods flush but never commit; the calling service owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    # Channels

    def get_channel_row(self, channel_id: str) -> ModeratedChannel | None:
        return self.session.get(ModeratedChannel, channel_id.lower())

    def find_channel(self, channel_id: str) -> ModeratedChannelConfig | None:
        """Return the channel's configuration snapshot, or None if unknown."""
        row = self.get_channel_row(channel_id)
        if row is None:
            return None
        return self.to_config(row)

    @staticmethod
    def to_config(row: ModeratedChannel) -> ModeratedChannelConfig:
        data: dict[str, Any] = {
            "id": row.id,
            "userId": row.user_id,
            "active": row.active,
            "banThreshold": row.ban_threshold,
            "slowModeHours": row.slow_mode_hours,
            "excludeUsernames": _load_json(row.exclude_usernames) or [],
            "excludeCohosts": row.exclude_cohosts,
        }
        inclusion = _load_json(row.inclusion_rule_set)
        exclusion = _load_json(row.exclusion_rule_set)
        if inclusion:
            data["inclusionRuleSet"] = inclusion
        if exclusion:
            data["exclusionRuleSet"] = exclusion
        return ModeratedChannelConfig.model_validate(data)

    def upsert_channel(self, config: ModeratedChannelConfig) -> ModeratedChannel:
        """Insert or replace the stored configuration for ``config.id``."""
        row = self.get_channel_row(config.id)
        if row is None:
            row = ModeratedChannel(id=config.id)
            self.session.add(row)
        row.user_id = config.user_id
        row.active = config.active
        row.ban_threshold = config.ban_threshold
        row.slow_mode_hours = config.slow_mode_hours
        row.exclude_cohosts = config.exclude_cohosts
        row.exclude_usernames = json.dumps(
            [option.model_dump(mode="json") for option in config.exclude_usernames]
        )
        row.inclusion_rule_set = json.dumps(config.inclusion_rule_set.to_storage())
        row.exclusion_rule_set = json.dumps(config.exclusion_rule_set.to_storage())
        self.session.flush()
        return row

    def add_to_bypass(self, channel_id: str, option: SelectOption) -> bool:
        """Append ``option`` to the bypass list; False if already present."""
        row = self.get_channel_row(channel_id)
        if row is None:
            return False
        options = _load_json(row.exclude_usernames) or []
        if any(int(existing["value"]) == option.value for existing in options):
            return False
        options.append(option.model_dump(mode="json"))
        row.exclude_usernames = json.dumps(options)
        self.session.flush()
        return True

    # Roles

    def cohost_fids(self, channel_id: str) -> set[int]:
        stmt = (
            select(Delegate.fid)
            .join(Role, Role.id == Delegate.role_id)
            .where(Delegate.channel_id == channel_id, Role.is_cohost_role.is_(True))
        )
        return {int(fid) for fid in self.session.scalars(stmt)}

    def find_role(self, channel_id: str, name: str) -> Role | None:
        stmt = select(Role).where(Role.channel_id == channel_id, Role.name == name)
        return self.session.scalars(stmt).first()

    def upsert_role(self, channel_id: str, name: str, *, is_cohost_role: bool = False) -> Role:
        role = self.find_role(channel_id, name)
        if role is None:
            role = Role(channel_id=channel_id, name=name, is_cohost_role=is_cohost_role)
            self.session.add(role)
        else:
            role.is_cohost_role = is_cohost_role
        self.session.flush()
        return role

    def upsert_delegate(
        self,
        role: Role,
        *,
        fid: int,
        username: str,
        avatar_url: str | None,
    ) -> Delegate:
        delegate = self.session.get(
            Delegate,
            {"fid": str(fid), "role_id": role.id, "channel_id": role.channel_id},
        )
        if delegate is None:
            delegate = Delegate(fid=str(fid), role_id=role.id, channel_id=role.channel_id)
            self.session.add(delegate)
        delegate.username = username
        delegate.avatar_url = avatar_url
        self.session.flush()
        return delegate

    # Cooldowns

    def find_cooldown(self, channel_id: str, fid: int) -> Cooldown | None:
        return self.session.get(
            Cooldown,
            {"affected_user_id": str(fid), "channel_id": channel_id},
        )

    def upsert_cooldown(self, channel_id: str, fid: int, expires_at: datetime | None) -> Cooldown:
        """Activate a cooldown; ``expires_at=None`` suspends indefinitely."""
        cooldown = self.find_cooldown(channel_id, fid)
        if cooldown is None:
            cooldown = Cooldown(affected_user_id=str(fid), channel_id=channel_id)
            self.session.add(cooldown)
        cooldown.active = True
        cooldown.expires_at = expires_at
        self.session.flush()
        return cooldown

    def deactivate_cooldown(self, channel_id: str, fid: int) -> bool:
        cooldown = self.find_cooldown(channel_id, fid)
        if cooldown is None:
            return False
        cooldown.active = False
        self.session.flush()
        return True

    # Moderation log

    def create_moderation_log(self, **fields: Any) -> ModerationLog:
        log = ModerationLog(**fields)
        self.session.add(log)
        self.session.flush()
        return log

    def get_log(self, channel_id: str, log_id: str) -> ModerationLog | None:
        log = self.session.get(ModerationLog, log_id)
        if log is None or log.channel_id != channel_id:
            return None
        return log

    def list_logs(
        self,
        channel_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
        action: str | None = None,
    ) -> list[ModerationLog]:
        """Return the channel's logs, newest first."""
        stmt = select(ModerationLog).where(ModerationLog.channel_id == channel_id)
        if action is not None:
            stmt = stmt.where(ModerationLog.action == action)
        stmt = stmt.order_by(ModerationLog.created_at.desc()).offset(offset).limit(limit)
        return list(self.session.scalars(stmt))

    def delete_logs_for_user(self, channel_id: str, fid: str) -> int:
        result = self.session.execute(
            delete(ModerationLog).where(
                ModerationLog.channel_id == channel_id,
                ModerationLog.affected_user_fid == fid,
            )
        )
        self.session.flush()
        return result.rowcount or 0

    # Downvotes

    def upsert_downvote(
        self,
        *,
        channel_id: str,
        cast_hash: str,
        fid: int,
        username: str,
        avatar_url: str | None,
    ) -> Downvote:
        downvote = self.session.get(Downvote, {"fid": str(fid), "cast_hash": cast_hash})
        if downvote is None:
            downvote = Downvote(fid=str(fid), cast_hash=cast_hash, channel_id=channel_id)
            self.session.add(downvote)
        downvote.username = username
        downvote.avatar_url = avatar_url
        self.session.flush()
        return downvote

    # Intake bookkeeping

    def get_cast_log(self, cast_hash: str) -> CastLog | None:
        return self.session.get(CastLog, cast_hash)

    def record_cast(
        self,
        *,
        cast_hash: str,
        channel_id: str,
        author_fid: int,
        status: int,
        data: dict[str, Any] | None = None,
    ) -> CastLog:
        entry = self.get_cast_log(cast_hash)
        if entry is None:
            entry = CastLog(hash=cast_hash, channel_id=channel_id, author_fid=author_fid)
            self.session.add(entry)
        entry.status = status
        entry.data = json.dumps(data or {})
        entry.created_at = utcnow()
        self.session.flush()
        return entry
