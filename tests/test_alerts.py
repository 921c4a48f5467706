import unittest
from types import SimpleNamespace
from unittest import mock

import discord

from commands import alerts
from core.config import Settings

GUILD = 100
ROLE = 555

SETTINGS = Settings(token="t", guild_id=GUILD, alerts_role_id=ROLE)


def _http_error() -> discord.HTTPException:
    return discord.HTTPException(SimpleNamespace(status=403, reason="Forbidden"), "Missing Permissions")


class AlertsCommandTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.member = mock.MagicMock()
        self.member.id = 7
        self.member.roles = []
        self.member.add_roles = mock.AsyncMock()
        self.member.remove_roles = mock.AsyncMock()
        self.guild = mock.MagicMock()
        self.guild.id = GUILD
        self.guild.get_member.return_value = self.member
        self.interaction = mock.MagicMock()
        self.interaction.guild = self.guild
        self.interaction.user = SimpleNamespace(id=7, name="alice")
        self.interaction.response.send_message = mock.AsyncMock()

    def _reply(self) -> str:
        self.interaction.response.send_message.assert_awaited_once()
        args, kwargs = self.interaction.response.send_message.await_args
        self.assertTrue(kwargs.get("ephemeral"))
        return args[0]

    async def test_adds_role_when_missing(self) -> None:
        result = await alerts.handle_alerts(self.interaction, SETTINGS)
        self.assertTrue(result.added and result.success)
        self.member.add_roles.assert_awaited_once()
        self.member.remove_roles.assert_not_awaited()
        self.assertEqual(self._reply(), alerts.MSG_ADDED)

    async def test_removes_role_when_present(self) -> None:
        self.member.roles = [SimpleNamespace(id=ROLE)]
        result = await alerts.handle_alerts(self.interaction, SETTINGS)
        self.assertFalse(result.added)
        self.member.remove_roles.assert_awaited_once()
        self.member.add_roles.assert_not_awaited()
        self.assertEqual(self._reply(), alerts.MSG_REMOVED)

    async def test_failed_add_reports_to_user(self) -> None:
        self.member.add_roles.side_effect = _http_error()
        result = await alerts.handle_alerts(self.interaction, SETTINGS)
        self.assertFalse(result.success)
        self.assertEqual(self._reply(), alerts.MSG_ADD_FAILED)

    async def test_wrong_guild_is_refused(self) -> None:
        self.guild.id = 999
        self.assertIsNone(await alerts.handle_alerts(self.interaction, SETTINGS))
        self.assertEqual(self._reply(), alerts.MSG_WRONG_GUILD)
        self.member.add_roles.assert_not_awaited()

    async def test_direct_message_is_refused(self) -> None:
        self.interaction.guild = None
        await alerts.handle_alerts(self.interaction, SETTINGS)
        self.assertEqual(self._reply(), alerts.MSG_NO_GUILD)

    async def test_unconfigured_role_is_refused(self) -> None:
        settings = Settings(token="t", guild_id=GUILD, alerts_role_id=None)
        await alerts.handle_alerts(self.interaction, settings)
        self.assertEqual(self._reply(), alerts.MSG_NOT_CONFIGURED)
        self.member.add_roles.assert_not_awaited()

    async def test_member_is_fetched_when_not_cached(self) -> None:
        self.guild.get_member.return_value = None
        self.guild.fetch_member = mock.AsyncMock(return_value=self.member)
        await alerts.handle_alerts(self.interaction, SETTINGS)
        self.guild.fetch_member.assert_awaited_once_with(7)
        self.member.add_roles.assert_awaited_once()


if __name__ == "__main__":
    unittest.main()
