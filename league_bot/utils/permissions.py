"""
Conversion from Discord users to the Actor values the operations layer checks.

Administrators are members with the guild Administrator permission. Outside
a guild (a DM button press, for example) no roles are known and nobody is an
admin.
"""

from typing import Union

import discord

from league_bot.data_models.roster import Actor


def actor_from_user(user: Union[discord.User, discord.Member]) -> Actor:
    """Snapshot a user's identity, admin flag and role ids."""
    if isinstance(user, discord.Member):
        return Actor(
            discord_id=user.id,
            display_name=user.display_name,
            is_admin=user.guild_permissions.administrator,
            is_bot=user.bot,
            role_ids=frozenset(role.id for role in user.roles),
        )
    return Actor(discord_id=user.id, display_name=user.display_name, is_bot=user.bot)


def actor_from_interaction(interaction: discord.Interaction) -> Actor:
    return actor_from_user(interaction.user)
