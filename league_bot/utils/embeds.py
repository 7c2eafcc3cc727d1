"""
Shared embed utilities for the league bot.

Turns the plain data returned by the operations layer into Discord embeds,
so cogs, views and the gateway render the same objects the same way.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

import discord

from league_bot.constants import UIConstants
from league_bot.data_models.fixtures import FixtureEntry, FixtureListing, MatchAnnouncement
from league_bot.data_models.roster import (
    OfferPrompt, PlayerProfile, StatChange, TeamRoster, TransactionLogEntry
)
from league_bot.utils.timestamps import unix_to_discord_timestamp

# Transaction log title, color and "by" label per entry kind
_TRANSACTION_STYLES = {
    "signed": ("✅ Player Signed", UIConstants.SUCCESS_COLOR, "Signed by"),
    "added": ("✅ Player Added", UIConstants.SUCCESS_COLOR, "Added by"),
    "removed": ("❌ Player Removed", UIConstants.RELEASE_COLOR, "Removed by"),
    "released": ("❌ Player Released", UIConstants.RELEASE_COLOR, "Released by"),
    "demanded": ("❌ Player Demanded Release", UIConstants.RELEASE_COLOR, "Demanded by"),
}

_TRANSACTION_VERBS = {
    "signed": "has signed with",
    "added": "has been added to",
    "removed": "has been removed from",
    "released": "has been released from",
    "demanded": "has demanded a release from",
}

_STAT_LABELS = {
    "goals": "Goals",
    "assists": "Assists",
    "mentions": "Mentions",
    "motm": "MOTM",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def success_embed(title: str, description: str, warnings: Sequence[str] = ()) -> discord.Embed:
    """Green confirmation embed; side-effect warnings are listed under the description."""
    embed = discord.Embed(title=title, description=description,
                          color=UIConstants.SUCCESS_COLOR, timestamp=_now())
    if warnings:
        embed.add_field(
            name=f"{UIConstants.WARNING_EMOJI} Warnings",
            value="\n".join(f"• {w}" for w in warnings)[:1024],
            inline=False
        )
        embed.color = UIConstants.WARNING_COLOR
    return embed


def info_embed(title: str, description: Optional[str] = None) -> discord.Embed:
    return discord.Embed(title=title, description=description,
                         color=UIConstants.DEFAULT_EMBED_COLOR, timestamp=_now())


def _fixture_lines(entry: FixtureEntry) -> str:
    home = f"<@&{entry.home_role_id}>" if entry.home_role_id else entry.home_team
    away = f"<@&{entry.away_role_id}>" if entry.away_role_id else entry.away_team
    return (
        f"{UIConstants.CLOCK_EMOJI} {unix_to_discord_timestamp(entry.match_timestamp)}\n"
        f"{home} {UIConstants.BALL_EMOJI} {away}\n"
        f"{UIConstants.STADIUM_EMOJI} {entry.stadium}"
    )


def build_fixtures_embed(listing: FixtureListing) -> discord.Embed:
    """
    Build the public fixture listing, one field per UTC calendar date.

    Discord caps an embed at 25 fields of 1024 characters; listings beyond
    that are truncated rather than rejected.
    """
    embed = discord.Embed(
        title=f"{UIConstants.BALL_EMOJI} UPCOMING FIXTURES {UIConstants.BALL_EMOJI}",
        description="━━━━━━━━━━━━━━━━━━━━━━",
        color=UIConstants.FIXTURES_COLOR,
        timestamp=_now()
    )

    if not listing.days:
        embed.description = "No upcoming matches scheduled."
        return embed

    for day in listing.days[:25]:
        value = "\n\n".join(_fixture_lines(entry) for entry in day.entries)
        if len(value) > 1024:
            value = value[:1021] + "..."
        embed.add_field(name=f"{UIConstants.CALENDAR_EMOJI} {day.date_key}", value=value, inline=False)

    embed.set_footer(text=f"{UIConstants.BALL_EMOJI} All times shown in your local timezone {UIConstants.BALL_EMOJI}")
    return embed


def build_fixtures_done_embed() -> discord.Embed:
    return discord.Embed(
        title="✅ FIXTURES COMPLETED ✅",
        description="All fixtures have been completed and archived.",
        color=UIConstants.FIXTURES_DONE_COLOR,
        timestamp=_now()
    )


def build_match_list_embed(entries: Iterable[FixtureEntry]) -> discord.Embed:
    entries = list(entries)
    embed = info_embed("Unplayed Matches")
    if not entries:
        embed.description = "There are no scheduled matches."
        return embed

    lines = [
        f"**#{e.match_id}** {e.home_team} vs {e.away_team}\n"
        f"{UIConstants.CLOCK_EMOJI} {unix_to_discord_timestamp(e.match_timestamp)} "
        f"{UIConstants.STADIUM_EMOJI} {e.stadium}"
        for e in entries
    ]
    description = "\n\n".join(lines)
    embed.description = description if len(description) <= 4096 else description[:4093] + "..."
    return embed


def build_announcement_embed(announcement: MatchAnnouncement) -> discord.Embed:
    home = f"<@&{announcement.home_role_id}>" if announcement.home_role_id else announcement.home_team
    away = f"<@&{announcement.away_role_id}>" if announcement.away_role_id else announcement.away_team
    embed = discord.Embed(
        title=f"{UIConstants.BALL_EMOJI} MATCH DAY {UIConstants.BALL_EMOJI}",
        description=f"{home} vs {away}",
        color=UIConstants.FIXTURES_COLOR,
        timestamp=_now()
    )
    embed.add_field(name=f"{UIConstants.CLOCK_EMOJI} Kickoff",
                    value=unix_to_discord_timestamp(announcement.match_timestamp), inline=True)
    embed.add_field(name=f"{UIConstants.STADIUM_EMOJI} Stadium", value=announcement.stadium, inline=True)
    if announcement.link:
        embed.add_field(name="Link", value=announcement.link, inline=False)
    embed.set_footer(text=f"Match #{announcement.match_id}")
    return embed


def build_offer_embed(prompt: OfferPrompt) -> discord.Embed:
    embed = discord.Embed(
        title="Contract Offer",
        description=f"You have received a contract offer from **{prompt.team_name}**!",
        color=UIConstants.GOLD_COLOR,
        timestamp=_now()
    )
    embed.add_field(name="Team", value=prompt.team_name, inline=True)
    embed.add_field(name="Position", value=prompt.position or "Not specified", inline=True)
    embed.add_field(name="Salary", value=prompt.salary, inline=True)
    embed.add_field(name="Duration", value=prompt.duration, inline=True)
    embed.add_field(name="Offered by", value=f"<@{prompt.sender_discord_id}>", inline=True)
    embed.set_footer(text="Click Accept to join or Decline to reject")
    return embed


def build_transaction_embed(entry: TransactionLogEntry) -> discord.Embed:
    title, color, by_label = _TRANSACTION_STYLES.get(
        entry.kind, (entry.kind.title(), UIConstants.DEFAULT_EMBED_COLOR, "By")
    )
    verb = _TRANSACTION_VERBS.get(entry.kind, "changed teams:")
    now = _now()
    embed = discord.Embed(
        title=title,
        description=f"<@{entry.player_discord_id}> {verb} **{entry.team_name}**",
        color=color,
        timestamp=now
    )
    embed.add_field(name="Player", value=f"<@{entry.player_discord_id}>", inline=True)
    embed.add_field(name="Team", value=entry.team_name, inline=True)
    if entry.actor_discord_id:
        embed.add_field(name=by_label, value=f"<@{entry.actor_discord_id}>", inline=True)
    if entry.position:
        embed.add_field(name="Position", value=entry.position, inline=True)
    if entry.salary:
        embed.add_field(name="Salary", value=entry.salary, inline=True)
    if entry.duration:
        embed.add_field(name="Duration", value=entry.duration, inline=True)
    embed.add_field(name="Date", value=unix_to_discord_timestamp(int(now.timestamp())), inline=False)
    return embed


def build_stat_change_embed(change: StatChange) -> discord.Embed:
    label = _STAT_LABELS.get(change.stat, change.stat)
    verb = "added to" if change.delta > 0 else "removed from"
    amount = abs(change.delta)
    embed = discord.Embed(
        title=f"{label} Updated",
        description=f"{amount} {label.lower()} {verb} <@{change.player_discord_id}>",
        color=UIConstants.SUCCESS_COLOR if change.delta > 0 else UIConstants.WARNING_COLOR,
        timestamp=_now()
    )
    embed.add_field(name="New total", value=str(change.new_value), inline=True)
    embed.add_field(name="By", value=f"<@{change.actor_discord_id}>", inline=True)
    return embed


def build_roster_embed(roster: TeamRoster) -> discord.Embed:
    embed = info_embed(f"{roster.name} [{roster.short}] Roster")

    leadership = []
    if roster.manager_discord_id:
        leadership.append(f"**Manager:** <@{roster.manager_discord_id}>")
    for assistant_id in roster.assistant_discord_ids:
        leadership.append(f"**Assistant Manager:** <@{assistant_id}>")
    if leadership:
        embed.add_field(name="Leadership", value="\n".join(leadership), inline=False)

    if roster.players:
        lines = [
            f"<@{p.discord_id}>" + (f" - {p.position}" if p.position else "")
            for p in roster.players
        ]
        embed.add_field(name=f"Players ({len(lines)})", value="\n".join(lines)[:1024], inline=False)

    if not leadership and not roster.players:
        embed.description = "No team leadership or members assigned yet."
    return embed


def build_profile_embed(profile: PlayerProfile, member: Optional[discord.abc.User] = None) -> discord.Embed:
    """Player counters and current club, with the member's avatar when available."""
    embed = info_embed(f"Player Stats: {profile.name}")
    if member:
        embed.set_thumbnail(url=member.display_avatar.url)
    embed.add_field(name="Goals", value=str(profile.goals), inline=True)
    embed.add_field(name="Assists", value=str(profile.assists), inline=True)
    embed.add_field(name="Mentions", value=str(profile.mentions), inline=True)
    embed.add_field(name="MOTM", value=str(profile.motm), inline=True)
    embed.add_field(name="Team", value=profile.team_name or "Free agent", inline=True)
    if profile.position:
        embed.add_field(name="Position", value=profile.position, inline=True)
    embed.add_field(name="Demands used", value=str(profile.demand_uses), inline=True)
    return embed


def build_leaderboard_embed(title: str, players: List, stat: str, empty_message: str) -> discord.Embed:
    embed = discord.Embed(title=title, color=UIConstants.GOLD_COLOR, timestamp=_now())
    if not players:
        embed.description = empty_message
        return embed
    unit = _STAT_LABELS.get(stat, stat).lower()
    embed.description = "\n".join(
        f"{i}. <@{p.discord_id}> - **{getattr(p, stat)}** {unit}"
        for i, p in enumerate(players, start=1)
    )
    return embed


def build_referees_embed(referee_ids: Sequence[int]) -> discord.Embed:
    embed = info_embed("Referees")
    if not referee_ids:
        embed.description = "No referees registered yet."
    else:
        embed.description = "\n".join(f"<@{discord_id}>" for discord_id in referee_ids)
    return embed
