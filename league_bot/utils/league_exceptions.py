"""
Custom exceptions for the league operations layer with user-friendly messages.

Every error carries a DenialReason so callers can tell denials apart without
parsing message text. The exception class gives the error kind.
"""

from enum import Enum
from typing import Optional


class DenialReason(Enum):
    # Authority
    NOT_ADMIN = "not_admin"
    NOT_OWNER = "not_owner"
    NOT_REFEREE_OR_ADMIN = "not_referee_or_admin"
    MANAGER_ROLE_NOT_CONFIGURED = "manager_role_not_configured"
    MISSING_MANAGER_ROLE = "missing_manager_role"
    MISSING_TEAM_ROLE = "missing_team_role"
    NOT_TEAM_MANAGER = "not_team_manager"
    NO_TEAM_AFFILIATION = "no_team_affiliation"
    NOT_RECIPIENT = "not_recipient"

    # Lookups
    TEAM_NOT_FOUND = "team_not_found"
    PLAYER_NOT_FOUND = "player_not_found"
    MATCH_NOT_FOUND = "match_not_found"
    MEMBERSHIP_NOT_FOUND = "membership_not_found"
    REFEREE_NOT_FOUND = "referee_not_found"
    NO_MANAGER = "no_manager"
    NO_ASSISTANT_MANAGERS = "no_assistant_managers"
    NO_SCHEDULED_MATCHES = "no_scheduled_matches"
    NO_FIXTURES_POSTED = "no_fixtures_posted"
    NOT_ASSISTANT_MANAGER = "not_assistant_manager"
    CHANNEL_NOT_CONFIGURED = "channel_not_configured"
    ROLE_NOT_CONFIGURED = "role_not_configured"

    # Conflicts
    TEAM_NAME_TAKEN = "team_name_taken"
    TEAM_ROLE_TAKEN = "team_role_taken"
    ALREADY_REFEREE = "already_referee"
    IS_REFEREE = "is_referee"
    TARGET_IS_MANAGER = "target_is_manager"
    TARGET_IS_ASSISTANT_MANAGER = "target_is_assistant_manager"
    ALREADY_SIGNED = "already_signed"
    TEAM_HAS_MANAGER = "team_has_manager"
    ALREADY_MANAGES_TEAM = "already_manages_team"
    ASSISTANT_CAPACITY_REACHED = "assistant_capacity_reached"
    ASSISTANT_OF_OTHER_TEAM = "assistant_of_other_team"
    ALREADY_ASSISTANT = "already_assistant"
    PLAYER_ON_OTHER_TEAM = "player_on_other_team"
    STAFF_CANNOT_DEMAND = "staff_cannot_demand"
    NOT_ON_TEAM = "not_on_team"
    DEMAND_LIMIT_REACHED = "demand_limit_reached"
    MATCH_CANCELLED = "match_cancelled"
    ALREADY_CANCELLED = "already_cancelled"
    FIXTURES_PROTECTED = "fixtures_protected"

    # Input
    INVALID_TARGET = "invalid_target"
    SELF_TARGET = "self_target"
    BOT_TARGET = "bot_target"
    INVALID_TEAMS = "invalid_teams"
    INVALID_DATE = "invalid_date"
    INVALID_TIME = "invalid_time"
    INVALID_ID = "invalid_id"
    INVALID_FIELD = "invalid_field"
    INVALID_DECISION = "invalid_decision"
    MISSING_VALUE = "missing_value"
    AMBIGUOUS_TEAM = "ambiguous_team"
    AMBIGUOUS_ASSISTANT = "ambiguous_assistant"
    CONFIRMATION_INCOMPLETE = "confirmation_incomplete"

    # Expiry
    OFFER_EXPIRED = "offer_expired"
    DEMAND_EXPIRED = "demand_expired"


class LeagueOperationError(Exception):
    """Base exception for league operation errors."""
    def __init__(self, message: str, user_message: str = None, reason: Optional[DenialReason] = None):
        super().__init__(message)
        self.user_message = user_message or message
        self.reason = reason


class UnauthorizedError(LeagueOperationError):
    """Raised when the caller lacks the required role or relationship."""
    pass


class NotFoundError(LeagueOperationError):
    """Raised when a referenced team, player, match or offer does not exist."""
    pass


class ConflictError(LeagueOperationError):
    """Raised when a uniqueness or mutual-exclusion rule would be violated."""
    pass


class InvalidInputError(LeagueOperationError):
    """Raised for malformed dates, times, ids or ambiguous requests."""
    pass


class ExpiredError(LeagueOperationError):
    """Raised when an offer or confirmation token is no longer valid."""
    pass


class ExternalSideEffectFailed(LeagueOperationError):
    """Raised by gateways when a role change or message delivery fails.

    Operations never let this escape; it becomes a warning on the outcome.
    """
    def __init__(self, action: str, details: str = None):
        super().__init__(
            f"Side effect '{action}' failed: {details}",
            f"{action} could not be completed" + (f": {details}" if details else "."),
        )
        self.action = action
