import unittest
from types import SimpleNamespace
from unittest import mock

import discord

from core.access_sync import (
    AccessAction,
    AccessSynchronizer,
    PresenceTransition,
    plan_actions,
)
from core.config import Settings

GUILD = 100
VOICE = 10
VIDEO = 20
OTHER = 30
USER = 7

SETTINGS = Settings(token="t", guild_id=GUILD, voice_channel_id=VOICE, video_channel_id=VIDEO)


def _transition(before, after, *, stream=False, guild=GUILD, user=USER):
    return PresenceTransition(guild, user, before, after, stream)


class PlanActionsTests(unittest.TestCase):
    def test_join_companion_grants(self) -> None:
        self.assertEqual(plan_actions(SETTINGS, _transition(None, VOICE)), [AccessAction.GRANT])
        self.assertEqual(plan_actions(SETTINGS, _transition(OTHER, VOICE)), [AccessAction.GRANT])

    def test_streaming_in_companion_grants_and_moves(self) -> None:
        self.assertEqual(
            plan_actions(SETTINGS, _transition(VOICE, VOICE, stream=True)),
            [AccessAction.GRANT, AccessAction.MOVE],
        )

    def test_join_then_transfer_grants_once_without_revoke(self) -> None:
        actions = plan_actions(SETTINGS, _transition(None, VOICE)) + plan_actions(SETTINGS, _transition(VOICE, VIDEO))
        self.assertEqual(actions.count(AccessAction.GRANT), 1)
        self.assertEqual(actions.count(AccessAction.REVOKE), 0)

    def test_transfer_between_tracked_channels_never_revokes(self) -> None:
        self.assertNotIn(AccessAction.REVOKE, plan_actions(SETTINGS, _transition(VOICE, VIDEO)))
        self.assertNotIn(AccessAction.REVOKE, plan_actions(SETTINGS, _transition(VIDEO, VOICE)))

    def test_leaving_restricted_revokes_once(self) -> None:
        self.assertEqual(plan_actions(SETTINGS, _transition(VIDEO, None)), [AccessAction.REVOKE])
        self.assertEqual(plan_actions(SETTINGS, _transition(VOICE, OTHER)), [AccessAction.REVOKE])

    def test_untracked_moves_do_nothing(self) -> None:
        self.assertEqual(plan_actions(SETTINGS, _transition(None, OTHER)), [])
        self.assertEqual(plan_actions(SETTINGS, _transition(OTHER, None)), [])

    def test_other_guild_or_missing_fields_are_ignored(self) -> None:
        self.assertEqual(plan_actions(SETTINGS, _transition(None, VOICE, guild=999)), [])
        self.assertEqual(plan_actions(SETTINGS, _transition(None, VOICE, guild=None)), [])
        self.assertEqual(plan_actions(SETTINGS, _transition(VIDEO, None, user=None)), [])


def _http_error() -> discord.HTTPException:
    return discord.HTTPException(SimpleNamespace(status=403, reason="Forbidden"), "Missing Permissions")


class AccessSynchronizerTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.channel = mock.MagicMock()
        self.channel.set_permissions = mock.AsyncMock()
        self.guild = mock.MagicMock()
        self.guild.id = GUILD
        self.guild.get_channel.return_value = self.channel
        self.member = mock.MagicMock()
        self.member.id = USER
        self.member.display_name = "alice"
        self.member.guild = self.guild
        self.member.move_to = mock.AsyncMock()
        self.sync = AccessSynchronizer(lambda: SETTINGS)

    def _state(self, channel_id=None, stream=False):
        channel = SimpleNamespace(id=channel_id) if channel_id is not None else None
        return SimpleNamespace(channel=channel, self_stream=stream)

    async def test_join_companion_creates_override(self) -> None:
        await self.sync.handle_voice_state_update(self.member, self._state(), self._state(VOICE))
        self.channel.set_permissions.assert_awaited_once_with(self.member, view_channel=True, reason=mock.ANY)
        self.member.move_to.assert_not_awaited()

    async def test_stream_moves_member(self) -> None:
        await self.sync.handle_voice_state_update(self.member, self._state(VOICE), self._state(VOICE, stream=True))
        self.member.move_to.assert_awaited_once_with(self.channel, reason=mock.ANY)

    async def test_leave_deletes_override(self) -> None:
        await self.sync.handle_voice_state_update(self.member, self._state(VIDEO), self._state())
        self.channel.set_permissions.assert_awaited_once_with(self.member, overwrite=None, reason=mock.ANY)

    async def test_other_guild_makes_no_call(self) -> None:
        self.guild.id = 999
        await self.sync.handle_voice_state_update(self.member, self._state(), self._state(VOICE))
        self.channel.set_permissions.assert_not_awaited()
        self.guild.get_channel.assert_not_called()

    async def test_missing_member_is_ignored(self) -> None:
        actions = await self.sync.handle_voice_state_update(None, self._state(), self._state(VOICE))
        self.assertEqual(actions, [])

    async def test_failed_move_keeps_grant(self) -> None:
        self.member.move_to.side_effect = _http_error()
        actions = await self.sync.handle_voice_state_update(self.member, self._state(), self._state(VOICE, stream=True))
        self.assertEqual(actions, [AccessAction.GRANT, AccessAction.MOVE])
        self.channel.set_permissions.assert_awaited_once()
        self.assertEqual(self.channel.set_permissions.await_count, 1)

    async def test_failed_grant_still_attempts_move(self) -> None:
        self.channel.set_permissions.side_effect = _http_error()
        await self.sync.handle_voice_state_update(self.member, self._state(), self._state(VOICE, stream=True))
        self.member.move_to.assert_awaited_once()

    async def test_missing_restricted_channel_is_fetched(self) -> None:
        self.guild.get_channel.return_value = None
        self.guild.fetch_channel = mock.AsyncMock(return_value=self.channel)
        await self.sync.handle_voice_state_update(self.member, self._state(), self._state(VOICE))
        self.guild.fetch_channel.assert_awaited_once_with(VIDEO)
        self.channel.set_permissions.assert_awaited_once()

    async def test_unknown_restricted_channel_is_a_no_op(self) -> None:
        self.guild.get_channel.return_value = None
        self.guild.fetch_channel = mock.AsyncMock(side_effect=_http_error())
        actions = await self.sync.handle_voice_state_update(self.member, self._state(), self._state(VOICE))
        self.assertEqual(actions, [])
        self.channel.set_permissions.assert_not_awaited()


if __name__ == "__main__":
    unittest.main()
