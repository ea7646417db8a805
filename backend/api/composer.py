"""
Fixture view composer.

Combines the day's aggregated fixtures with the user's marks and
preferences into the grouped, ordered, filtered view the clients render.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional, Sequence

from shared.leagues import TRACKED_LEAGUES
from shared.models.domain import DayView, Fixture, League, LeagueGroup, UserPreferences
from shared.utils.clock import DateLike, parse_calendar_date
from shared.utils.logging import get_logger
from store.marks import MarkStore
from store.preferences import PreferenceStore

from ingest.aggregator import FixtureAggregator

logger = get_logger(__name__)


def resolve_league_order(
    leagues: Sequence[League],
    override: Optional[Sequence[str]],
    stored: Sequence[str],
) -> list[League]:
    """
    Override order if given, else the stored order, else configuration order.

    Unknown ids are ignored and configured leagues the chosen order does not
    mention follow in configuration order.
    """
    by_id = {league.league_id: league for league in leagues}
    preferred = override if override else stored

    ordered: list[League] = []
    seen: set[str] = set()
    for league_id in preferred or ():
        league = by_id.get(league_id)
        if league is not None and league_id not in seen:
            ordered.append(league)
            seen.add(league_id)
    ordered.extend(league for league in leagues if league.league_id not in seen)
    return ordered


def _kickoff_key(fixture: Fixture) -> tuple[str, str]:
    return (fixture.kickoff_time, fixture.fixture_id)


def group_fixtures(
    fixtures: Iterable[Fixture],
    preferences: UserPreferences,
    league_order_override: Optional[Sequence[str]] = None,
    leagues: Sequence[League] = TRACKED_LEAGUES,
) -> list[LeagueGroup]:
    """Pure grouping step, separated from I/O for testing."""
    by_league: dict[str, list[Fixture]] = defaultdict(list)
    for fixture in fixtures:
        by_league[fixture.league_id].append(fixture)

    hidden = set(preferences.hidden_leagues)
    collapsed = set(preferences.collapsed_leagues)

    groups: list[LeagueGroup] = []
    for league in resolve_league_order(leagues, league_order_override, preferences.league_order):
        if league.league_id in hidden:
            continue
        league_fixtures = sorted(by_league.get(league.league_id, ()), key=_kickoff_key)
        groups.append(
            LeagueGroup(
                league_id=league.league_id,
                league_name=league.display_name,
                badge_url=league.badge_url,
                collapsed=league.league_id in collapsed,
                fixture_count=len(league_fixtures),
                fixtures=league_fixtures,
            )
        )
    return groups


class FixtureViewComposer:
    def __init__(
        self,
        aggregator: FixtureAggregator,
        marks: MarkStore,
        preferences: PreferenceStore,
        leagues: Sequence[League] = TRACKED_LEAGUES,
    ) -> None:
        self._aggregator = aggregator
        self._marks = marks
        self._preferences = preferences
        self._leagues = tuple(leagues)

    async def compose_view(
        self,
        user_id: str,
        day: DateLike,
        league_order_override: Optional[Sequence[str]] = None,
    ) -> list[LeagueGroup]:
        target = parse_calendar_date(day)
        fixtures = await self._aggregator.get_fixtures_for_date(target)
        preferences = await self._preferences.get_preferences(user_id)
        return group_fixtures(fixtures, preferences, league_order_override, self._leagues)

    async def compose_day(
        self,
        user_id: str,
        day: DateLike,
        league_order_override: Optional[Sequence[str]] = None,
    ) -> DayView:
        """Full payload for the fixtures screen: groups, the user's marks and stats."""
        target = parse_calendar_date(day)
        groups = await self.compose_view(user_id, target, league_order_override)
        watched_ids = await self._marks.list_watched_ids_for_date(user_id, target)
        notified_ids = await self._marks.list_notified_ids_for_date(user_id, target)
        stats = await self._marks.watched_stats(user_id)
        logger.debug(
            "day_view_composed",
            user_id=user_id,
            date=target.isoformat(),
            leagues=len(groups),
        )
        return DayView(
            date=target,
            leagues=groups,
            watched_ids=sorted(watched_ids),
            notified_ids=sorted(notified_ids),
            stats=stats,
        )
