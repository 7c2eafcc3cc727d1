"""
Fixture Operations

Owns the match lifecycle (create, edit, reschedule, cancel, mark done) and the
league-wide posting cycle: at most one fixture listing is outstanding at a
time, it can be removed while live, and archiving it purges every match.
"""

import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from league_bot.data_models.fixtures import FixtureDay, FixtureEntry, FixtureListing, MatchAnnouncement
from league_bot.data_models.roster import Actor
from league_bot.database.models import Match, MatchStatus
from league_bot.database.repository import LeagueRepository
from league_bot.operations.base import LifecycleOperations, OperationOutcome
from league_bot.operations.eligibility import (
    require_admin, require_referee_or_admin, can_archive_fixtures, can_remove_fixtures
)
from league_bot.utils.league_exceptions import (
    DenialReason, NotFoundError, ConflictError, InvalidInputError
)
from league_bot.utils.timestamps import parse_date, parse_time, to_unix, split_unix, unix_to_date_string

EDITABLE_FIELDS = ("home", "away", "stadium", "date", "time")


@dataclass
class FixtureOutcome(OperationOutcome):
    """Result of a fixture operation"""
    match: Optional[Match] = None
    listing: Optional[FixtureListing] = None
    purged_matches: int = 0


def group_fixtures_by_date(entries: Iterable[FixtureEntry]) -> List[FixtureDay]:
    """
    Group fixtures by UTC calendar date.

    Days come out in ascending date order and each day's matches by kickoff,
    ties broken by match id.
    """
    by_date: Dict[str, List[FixtureEntry]] = defaultdict(list)
    for entry in entries:
        by_date[unix_to_date_string(entry.match_timestamp)].append(entry)

    return [
        FixtureDay(date_key=key,
                   entries=tuple(sorted(by_date[key], key=lambda e: (e.match_timestamp, e.match_id))))
        for key in sorted(by_date)
    ]


def _parse_match_date(date_str: str):
    try:
        return parse_date(date_str)
    except ValueError as e:
        raise InvalidInputError(str(e), "Invalid date. Use the format YYYY-MM-DD.",
                                reason=DenialReason.INVALID_DATE)


def _parse_match_time(time_str: str):
    try:
        return parse_time(time_str)
    except ValueError as e:
        raise InvalidInputError(str(e), "Invalid time. Use the 24 hour format HH:MM.",
                                reason=DenialReason.INVALID_TIME)


def _require_positive_id(match_id: int):
    if not isinstance(match_id, int) or isinstance(match_id, bool) or match_id <= 0:
        raise InvalidInputError(f"Invalid match id {match_id!r}", "Match ID must be a positive integer.",
                                reason=DenialReason.INVALID_ID)


def _require_distinct_teams(home_team_id: int, away_team_id: int):
    if home_team_id == away_team_id:
        raise InvalidInputError("Home and away team are the same",
                                "Home and away teams must be different.",
                                reason=DenialReason.INVALID_TEAMS)


class FixtureOperations(LifecycleOperations):
    """
    Service class for matches and fixture postings.
    """

    # --- Helpers ---

    async def _require_match(self, repo: LeagueRepository, match_id: int) -> Match:
        _require_positive_id(match_id)
        match = await repo.get_match(match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found", "No match with that ID exists.",
                                reason=DenialReason.MATCH_NOT_FOUND)
        return match

    async def _require_referee_or_admin(self, repo: LeagueRepository, actor: Actor, action: str):
        is_referee = await repo.get_referee(actor.discord_id) is not None
        require_referee_or_admin(actor, is_referee, action).raise_if_denied()

    async def _fixture_entries(self, repo: LeagueRepository, matches: List[Match]) -> List[FixtureEntry]:
        team_ids = {m.home_team_id for m in matches} | {m.away_team_id for m in matches}
        teams = {team_id: await repo.get_team(team_id) for team_id in team_ids}
        return [
            FixtureEntry(
                match_id=m.id,
                home_team=teams[m.home_team_id].name,
                away_team=teams[m.away_team_id].name,
                stadium=m.stadium,
                match_timestamp=m.match_timestamp,
                home_role_id=teams[m.home_team_id].role_id,
                away_role_id=teams[m.away_team_id].role_id,
            )
            for m in matches
        ]

    # --- Match lifecycle ---

    async def create_match(
        self,
        actor: Actor,
        home_team_id: int,
        away_team_id: int,
        stadium: str,
        date: str,
        time: str,
        session: Optional[AsyncSession] = None
    ) -> FixtureOutcome:
        """
        Schedule a match. Date and time are interpreted as UTC.

        Raises:
            InvalidInputError: Bad date, bad time, blank stadium or home == away
            NotFoundError: Either team does not exist
        """
        require_admin(actor, "create matches").raise_if_denied()
        match_date = _parse_match_date(date)
        match_time = _parse_match_time(time)
        stadium = (stadium or "").strip()
        if not stadium:
            raise InvalidInputError("Stadium is required", reason=DenialReason.MISSING_VALUE)
        _require_distinct_teams(home_team_id, away_team_id)

        async def _create(session: AsyncSession) -> Match:
            repo = LeagueRepository(session)
            home = await self._require_team(repo, home_team_id)
            away = await self._require_team(repo, away_team_id)
            match = await repo.add_match(home.id, away.id, stadium, to_unix(match_date, match_time))
            self.logger.info(f"Match {match.id} created: {home.name} vs {away.name} at {stadium}")
            return match

        return FixtureOutcome(match=await self._in_transaction(_create, session))

    async def edit_match(
        self,
        actor: Actor,
        match_id: int,
        field: str,
        value: str,
        session: Optional[AsyncSession] = None
    ) -> FixtureOutcome:
        """
        Change one field of a match, leaving the others untouched.

        Home and away take a team name. Editing the date keeps the kickoff
        time and editing the time keeps the date.
        """
        require_admin(actor, "edit matches").raise_if_denied()
        field = (field or "").strip().lower()
        if field not in EDITABLE_FIELDS:
            raise InvalidInputError(f"Unknown match field {field!r}",
                                    f"Field must be one of: {', '.join(EDITABLE_FIELDS)}.",
                                    reason=DenialReason.INVALID_FIELD)
        value = (value or "").strip()
        if not value:
            raise InvalidInputError("A new value is required", reason=DenialReason.MISSING_VALUE)

        async def _edit(session: AsyncSession) -> Match:
            repo = LeagueRepository(session)
            match = await self._require_match(repo, match_id)
            current_date, current_time = split_unix(match.match_timestamp)

            if field in ("home", "away"):
                team = await repo.get_team_by_name(value)
                if team is None:
                    raise NotFoundError(f"Team {value!r} not found", f"No team named {value} exists.",
                                        reason=DenialReason.TEAM_NOT_FOUND)
                home_id = team.id if field == "home" else match.home_team_id
                away_id = team.id if field == "away" else match.away_team_id
                _require_distinct_teams(home_id, away_id)
                match.home_team_id, match.away_team_id = home_id, away_id
            elif field == "stadium":
                match.stadium = value
            elif field == "date":
                match.match_timestamp = to_unix(_parse_match_date(value), current_time)
            else:
                match.match_timestamp = to_unix(current_date, _parse_match_time(value))

            await session.flush()
            self.logger.info(f"Match {match.id} edited by {actor.discord_id}: {field} -> {value}")
            return match

        return FixtureOutcome(match=await self._in_transaction(_edit, session))

    async def reschedule_match(
        self,
        actor: Actor,
        match_id: int,
        date: str,
        time: str,
        session: Optional[AsyncSession] = None
    ) -> FixtureOutcome:
        require_admin(actor, "reschedule matches").raise_if_denied()
        match_date = _parse_match_date(date)
        match_time = _parse_match_time(time)

        async def _reschedule(session: AsyncSession) -> Match:
            repo = LeagueRepository(session)
            match = await self._require_match(repo, match_id)
            if match.is_cancelled:
                raise ConflictError(f"Match {match.id} is cancelled", "Cannot reschedule a cancelled match.",
                                    reason=DenialReason.MATCH_CANCELLED)
            match.match_timestamp = to_unix(match_date, match_time)
            await session.flush()
            self.logger.info(f"Match {match.id} rescheduled to {date} {time} by {actor.discord_id}")
            return match

        return FixtureOutcome(match=await self._in_transaction(_reschedule, session))

    async def cancel_match(
        self,
        actor: Actor,
        match_id: int,
        reason: str,
        session: Optional[AsyncSession] = None
    ) -> FixtureOutcome:
        """Cancel a match permanently. A reason is required."""
        require_admin(actor, "cancel matches").raise_if_denied()
        reason = (reason or "").strip()
        if not reason:
            raise InvalidInputError("Cancellation reason is required",
                                    "A reason is required to cancel a match.",
                                    reason=DenialReason.MISSING_VALUE)

        async def _cancel(session: AsyncSession) -> Match:
            repo = LeagueRepository(session)
            match = await self._require_match(repo, match_id)
            if match.is_cancelled:
                raise ConflictError(f"Match {match.id} already cancelled", "This match is already cancelled.",
                                    reason=DenialReason.ALREADY_CANCELLED)
            match.status = MatchStatus.CANCELLED
            match.cancel_reason = reason
            await session.flush()
            self.logger.info(f"Match {match.id} cancelled by {actor.discord_id}: {reason}")
            return match

        return FixtureOutcome(match=await self._in_transaction(_cancel, session))

    async def mark_match_done(self, actor: Actor, match_id: int,
                              session: Optional[AsyncSession] = None) -> FixtureOutcome:
        """Remove a played match from the schedule."""
        _require_positive_id(match_id)

        async def _done(session: AsyncSession) -> Match:
            repo = LeagueRepository(session)
            await self._require_referee_or_admin(repo, actor, "mark matches as done")
            match = await self._require_match(repo, match_id)
            await repo.delete_match(match)
            self.logger.info(f"Match {match_id} marked done by {actor.discord_id}")
            return match

        return FixtureOutcome(match=await self._in_transaction(_done, session))

    async def get_match(self, match_id: int, session: Optional[AsyncSession] = None) -> Match:
        async with self._get_session_context(session) as s:
            return await self._require_match(LeagueRepository(s), match_id)

    async def list_scheduled_matches(self, actor: Actor,
                                     session: Optional[AsyncSession] = None) -> List[FixtureEntry]:
        """Scheduled matches in kickoff order, for referees and admins."""
        async with self._get_session_context(session) as s:
            repo = LeagueRepository(s)
            await self._require_referee_or_admin(repo, actor, "list matches")
            return await self._fixture_entries(repo, await repo.scheduled_matches())

    async def announce_match(self, actor: Actor, match_id: int, link: Optional[str] = None,
                             session: Optional[AsyncSession] = None) -> FixtureOutcome:
        """Post a match announcement to the match channel."""
        async with self._get_session_context(session) as s:
            repo = LeagueRepository(s)
            await self._require_referee_or_admin(repo, actor, "announce matches")
            match = await self._require_match(repo, match_id)
            entry = (await self._fixture_entries(repo, [match]))[0]

        channel_id = self.settings.current.match_channel
        if channel_id is None:
            raise NotFoundError("Match channel not configured",
                                "The match channel has not been set. An admin must configure it first.",
                                reason=DenialReason.CHANNEL_NOT_CONFIGURED)

        outcome = FixtureOutcome(match=match)
        announcement = MatchAnnouncement(
            match_id=entry.match_id, home_team=entry.home_team, away_team=entry.away_team,
            stadium=entry.stadium, match_timestamp=entry.match_timestamp,
            home_role_id=entry.home_role_id, away_role_id=entry.away_role_id, link=link,
        )
        await self._attempt_side_effect(outcome, "match announcement",
                                        self.gateway.announce_match(channel_id, announcement))
        return outcome

    # --- Posting cycle ---

    async def post_fixtures(self, actor: Actor, session: Optional[AsyncSession] = None) -> FixtureOutcome:
        """
        Post every scheduled match as one grouped listing.

        Any earlier marker is replaced, so only one listing is ever outstanding.

        Raises:
            NotFoundError: There are no scheduled matches
        """
        require_admin(actor, "post fixtures").raise_if_denied()
        channel_id = self.settings.current.fixtures_channel

        async def _post(session: AsyncSession) -> FixtureListing:
            repo = LeagueRepository(session)
            matches = await repo.scheduled_matches()
            if not matches:
                raise NotFoundError("No scheduled matches", "There are no upcoming scheduled matches.",
                                    reason=DenialReason.NO_SCHEDULED_MATCHES)

            token = uuid.uuid4().hex
            await repo.replace_posting(token, anchor_match_id=matches[0].id,
                                       match_count=len(matches), channel_id=channel_id)
            days = group_fixtures_by_date(await self._fixture_entries(repo, matches))
            self.logger.info(f"Fixtures {token} posted by {actor.discord_id} with {len(matches)} matches")
            return FixtureListing(token=token, days=tuple(days))

        listing = await self._in_transaction(_post, session)
        outcome = FixtureOutcome(listing=listing)

        if channel_id is None:
            outcome.warnings.append("The fixtures channel has not been set, so the listing was not posted.")
            self.logger.warning(f"Fixtures {listing.token} recorded without a fixtures channel")
            return outcome

        message_id = await self._attempt_side_effect(outcome, "post fixtures",
                                                     self.gateway.publish_fixtures(channel_id, listing))
        if message_id is not None:
            async def _attach(session: AsyncSession):
                posting = await LeagueRepository(session).get_posting()
                # A newer posting may have replaced this one meanwhile
                if posting is not None and posting.token == listing.token:
                    posting.message_id = message_id

            await self._in_transaction(_attach, session)
            outcome.listing = FixtureListing(token=listing.token, days=listing.days, message_id=message_id)
        return outcome

    async def archive_fixtures(self, actor: Actor, session: Optional[AsyncSession] = None) -> FixtureOutcome:
        """
        Mark the outstanding listing as done and purge every match.

        Raises:
            NotFoundError: No listing is outstanding
        """
        require_admin(actor, "mark fixtures as done").raise_if_denied()

        async def _archive(session: AsyncSession):
            repo = LeagueRepository(session)
            posting = await repo.get_posting()
            can_archive_fixtures(posting).raise_if_denied()

            posting.is_archived = True
            await session.flush()
            listing = FixtureListing(token=posting.token, days=(), archived=True,
                                     message_id=posting.message_id)
            channel_id = posting.channel_id

            purged = await repo.purge_matches()
            await repo.clear_posting()
            self.logger.info(f"Fixtures {posting.token} archived by {actor.discord_id}; {purged} matches purged")
            return listing, channel_id, purged

        listing, channel_id, purged = await self._in_transaction(_archive, session)
        outcome = FixtureOutcome(listing=listing, purged_matches=purged)
        channel_id = channel_id or self.settings.current.fixtures_channel
        if listing.message_id is not None and channel_id is not None:
            await self._attempt_side_effect(outcome, "mark fixtures listing as done",
                                            self.gateway.archive_fixture_listing(channel_id, listing.message_id))
        return outcome

    async def remove_fixtures(self, actor: Actor, session: Optional[AsyncSession] = None) -> FixtureOutcome:
        """
        Take down the outstanding listing without touching the matches.

        Raises:
            NotFoundError: No listing is outstanding
            ConflictError: The listing is archived and protected
        """
        require_admin(actor, "remove fixtures").raise_if_denied()

        async def _remove(session: AsyncSession):
            repo = LeagueRepository(session)
            posting = await repo.get_posting()
            can_remove_fixtures(posting).raise_if_denied()

            listing = FixtureListing(token=posting.token, days=(), message_id=posting.message_id)
            channel_id = posting.channel_id
            await repo.clear_posting()
            self.logger.info(f"Fixtures {posting.token} removed by {actor.discord_id}")
            return listing, channel_id

        listing, channel_id = await self._in_transaction(_remove, session)
        outcome = FixtureOutcome(listing=listing)
        channel_id = channel_id or self.settings.current.fixtures_channel
        if listing.message_id is not None and channel_id is not None:
            await self._attempt_side_effect(outcome, "delete fixtures listing",
                                            self.gateway.delete_fixture_listing(channel_id, listing.message_id))
        return outcome

    async def current_posting(self, session: Optional[AsyncSession] = None):
        async with self._get_session_context(session) as s:
            return await LeagueRepository(s).get_posting()
