"""
Operations Layer

Business rules for the league, composed from repository calls. Each
operations class runs its state change in one serialised transaction and
performs chat side effects (roles, messages) only after commit.

- RosterOperations: offers, releases, staff appointments and demands
- FixtureOperations: match scheduling and the fixture posting cycle
- TeamOperations, RefereeOperations, StatsOperations, PlayerOperations
- AdminOperations: owner-only maintenance
"""
