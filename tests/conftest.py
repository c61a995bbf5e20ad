"""
Pytest configuration and fixtures for Warncord tests.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from warncord.database.database import Database  # noqa: E402
from warncord.datatypes.command_datatypes import CommandContext, CommandTarget  # noqa: E402
from warncord.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID  # noqa: E402
from warncord.datatypes.moderation_datatypes import InboundMessage  # noqa: E402
from warncord.moderation.services import build_services  # noqa: E402

GUILD = GuildID(1000)
CHANNEL = ChannelID(2000)
ADMIN = UserID(3000)
MEMBER = UserID(4000)


@pytest_asyncio.fixture
async def database(tmp_path):
    """A fresh SQLite database in a temporary directory."""
    db = Database(tmp_path / "test.db")
    assert await db.initialize()
    yield db
    await db.shutdown()


@pytest.fixture
def platform():
    """Fake chat platform; every call succeeds and everyone is an admin."""
    fake = AsyncMock()
    fake.is_admin.return_value = True
    return fake


@pytest.fixture
def services(database, platform):
    return build_services(database, platform)


@pytest.fixture
def admin_ctx():
    return CommandContext(guild_id=GUILD, channel_id=CHANNEL, issuer_id=ADMIN, issuer_name="admin#0001")


@pytest.fixture
def member_target():
    return CommandTarget.from_id(MEMBER, name="member#0002")


_message_ids = iter(range(10_000, 1_000_000))


def make_message(content: str, author: UserID = MEMBER, guild: GuildID = GUILD) -> InboundMessage:
    return InboundMessage(
        guild_id=guild,
        channel_id=CHANNEL,
        message_id=MessageID(next(_message_ids)),
        author_id=author,
        author_name="member#0002",
        content=content,
    )
