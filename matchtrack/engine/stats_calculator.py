"""
Stats Calculator — Match and per-set statistics from the point log.

Computes per-player statistics including:
- Points won on serve and on return (every tracking level)
- Aces, double faults, first/second serve points and serve placement
- Shot type / placement breakdowns, winners and errors
- Between-point reactions
- Rally length buckets, court positions and between-point timing (professional tracking)
- Break point and game point conversion, and the game-by-game point history
  (when the scoring engine is given)

Sections a tracking level never records are left as None.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional, Sequence

from matchtrack.engine.scoring import ScoringEngine
from matchtrack.models.errors import ScoringError
from matchtrack.models.events import (
    CourtPosition,
    MissedShot,
    PointEvent,
    RallyEnding,
    RallyLength,
    Reaction,
    ServeOutcome,
    ServePlacement,
    ShotPlacement,
    ShotType,
)
from matchtrack.models.match import Player, PointContext, TrackingLevel
from matchtrack.models.stats import (
    ConversionStats,
    GameRecord,
    MatchStatistics,
    RallyStats,
    ServeStats,
    SetStatistics,
    ShotBreakdown,
    StatisticsBlock,
    TimingStats,
)

logger = logging.getLogger("matchtrack.engine.stats")


class _ReplayedPoint(NamedTuple):
    context: PointContext
    set_index: int
    game_over: bool


# Serve outcomes whose last shot was struck by the player who lost the point.
_LOSER_STRUCK = frozenset({
    ServeOutcome.DOUBLE_FAULT, ServeOutcome.RETURN_ERROR, ServeOutcome.FORCED_RETURN_ERROR,
})


class StatsCalculator:
    """Computes match statistics from point-level data."""

    def compute_statistics(
        self,
        events: Sequence[PointEvent],
        tracking_level: TrackingLevel,
        engine: Optional[ScoringEngine] = None,
    ) -> MatchStatistics:
        level = TrackingLevel(tracking_level)
        stats = MatchStatistics(tracking_level=level)
        self._init_sections(stats, level, with_conversion=engine is not None)

        replayed = self._replay(events, engine) if engine is not None else []
        per_set: dict[int, SetStatistics] = {}

        for index, event in enumerate(events):
            if index >= len(replayed):
                self._process_point(stats, event, None)
                continue
            point = replayed[index]
            self._process_point(stats, event, point.context)
            block = per_set.get(point.set_index)
            if block is None:
                block = SetStatistics(set_index=point.set_index)
                self._init_sections(block, level, with_conversion=True)
                per_set[point.set_index] = block
            self._process_point(block, event, point.context)

        self._finalize(stats)
        if engine is not None:
            stats.sets = [per_set[i] for i in sorted(per_set)]
            for block in stats.sets:
                self._finalize(block)
            stats.games = self._game_history(events, replayed)

        logger.debug("Statistics over %d points at %s", stats.total_points, level.value)
        return stats

    # ── Setup ────────────────────────────────────────────────────────────────

    def _init_sections(
        self, block: StatisticsBlock, level: TrackingLevel, with_conversion: bool
    ) -> None:
        if level.includes(TrackingLevel.LEVEL_2):
            block.serve = {
                p: ServeStats(placements=_zeros(ServePlacement)) for p in Player
            }
            block.shot_breakdown = {
                p: ShotBreakdown(
                    by_shot_type=_zeros(ShotType),
                    by_placement=_zeros(ShotPlacement),
                    missed_shots=_zeros(MissedShot),
                )
                for p in Player
            }
            block.reactions = {p: _zeros(Reaction) for p in Player}
        if level.includes(TrackingLevel.LEVEL_3):
            block.rallies = RallyStats(
                by_length=_zeros(RallyLength),
                court_positions=_zeros(CourtPosition),
            )
            block.timing = TimingStats()
        if with_conversion:
            block.conversion = {p: ConversionStats() for p in Player}

    def _replay(
        self, events: Sequence[PointEvent], engine: ScoringEngine
    ) -> list[_ReplayedPoint]:
        """Point context, set index and game boundary of each event, in log order."""
        replayed: list[_ReplayedPoint] = []
        state = engine.initial_state()
        for event in events:
            ctx = engine.point_context(state)
            set_index = state.current_set_index
            result = engine.apply(state, event)
            if isinstance(result, ScoringError):
                logger.warning(
                    "Stopped per-set statistics at point %d: %s", len(replayed) + 1, result.message
                )
                break
            game_over = (
                result.is_complete
                or result.current_set_index != set_index
                or result.current_game.total_points == 0
            )
            replayed.append(_ReplayedPoint(ctx, set_index, game_over))
            state = result
        return replayed

    @staticmethod
    def _game_history(
        events: Sequence[PointEvent], replayed: Sequence[_ReplayedPoint]
    ) -> list[GameRecord]:
        """Points grouped into games, each with the player who served it."""
        games: list[GameRecord] = []
        current: Optional[GameRecord] = None
        for event, point in zip(events, replayed):
            if current is None:
                current = GameRecord(
                    set_index=point.set_index,
                    game_index=sum(1 for g in games if g.set_index == point.set_index),
                    server=point.context.server,
                    is_tiebreak=point.context.is_tiebreak,
                )
                games.append(current)
            winner = Player(event.winner)
            current.points.append(winner)
            if point.game_over:
                current.winner = winner
                current = None
        return games

    # ── Per point ────────────────────────────────────────────────────────────

    def _process_point(
        self, block: StatisticsBlock, event: PointEvent, ctx: Optional[PointContext]
    ) -> None:
        block.total_points += 1
        winner = Player(event.winner)
        block.points[winner].points_won += 1

        server = ctx.server if ctx is not None else event.serving_player
        if server is not None:
            receiver = server.opponent
            block.points[server].service_points_played += 1
            block.points[receiver].return_points_played += 1
            if winner is server:
                block.points[server].service_points_won += 1
            else:
                block.points[receiver].return_points_won += 1
            if block.serve is not None:
                self._process_serve(block.serve[server], block.serve[receiver], event, winner is server)

        if block.shot_breakdown is not None:
            self._process_shot(block.shot_breakdown[self._last_striker(event)], event)

        if block.reactions is not None and event.reaction_tags is not None:
            for player in Player:
                reaction = event.reaction_tags.for_player(player)
                if reaction is not None:
                    block.reactions[player][reaction.value] += 1

        if block.rallies is not None:
            if event.rally_length is not None:
                block.rallies.by_length[event.rally_length.value] += 1
            if event.court_position is not None:
                block.rallies.court_positions[event.court_position.value] += 1

        if block.timing is not None:
            self._process_timing(block.timing, event, server)

        if block.conversion is not None and ctx is not None:
            self._process_conversion(block.conversion, ctx, winner)

    def _process_serve(
        self, srv: ServeStats, ret: ServeStats, event: PointEvent, server_won: bool
    ) -> None:
        outcome = event.serve_outcome
        if outcome is None and event.is_second_serve is None and event.serve_placement is None:
            return

        # Every point starts on a first serve; a double fault always reached a second.
        srv.first_serves += 1
        if event.is_second_serve or outcome is ServeOutcome.DOUBLE_FAULT:
            srv.second_serves += 1
            if server_won:
                srv.second_serve_points_won += 1
        else:
            srv.first_serves_in += 1
            if server_won:
                srv.first_serve_points_won += 1

        if outcome is ServeOutcome.ACE:
            srv.aces += 1
        elif outcome is ServeOutcome.DOUBLE_FAULT:
            srv.double_faults += 1
        elif outcome in (ServeOutcome.RETURN_ERROR, ServeOutcome.FORCED_RETURN_ERROR):
            srv.serve_in_return_out += 1
            ret.return_errors += 1
        elif outcome is ServeOutcome.RETURN_WINNER:
            ret.return_winners += 1

        if event.serve_placement is not None:
            srv.placements[event.serve_placement.value] += 1

    def _process_shot(self, breakdown: ShotBreakdown, event: PointEvent) -> None:
        if event.shot_type is not None:
            breakdown.by_shot_type[event.shot_type.value] += 1
        if event.shot_placement is not None:
            breakdown.by_placement[event.shot_placement.value] += 1
        if event.missed_shot is not None:
            breakdown.missed_shots[event.missed_shot.value] += 1

        if event.rally_ending is RallyEnding.WINNER:
            breakdown.winners += 1
        elif event.rally_ending is RallyEnding.UNFORCED_ERROR:
            breakdown.unforced_errors += 1
        elif event.rally_ending is RallyEnding.FORCED_ERROR:
            breakdown.forced_errors += 1

    @staticmethod
    def _process_timing(timing: TimingStats, event: PointEvent, server: Optional[Player]) -> None:
        ts = event.timestamp_ms
        if timing.first_point_ms is None or ts < timing.first_point_ms:
            timing.first_point_ms = ts
        if timing.last_point_ms is None or ts > timing.last_point_ms:
            timing.last_point_ms = ts
        if event.between_point_seconds is not None and server is not None:
            timing.between_point_seconds[server] += event.between_point_seconds
            timing.timed_points[server] += 1

    @staticmethod
    def _last_striker(event: PointEvent) -> Player:
        """Player who hit the shot that ended the point."""
        winner = Player(event.winner)
        if event.rally_ending is RallyEnding.WINNER:
            return winner
        if event.rally_ending in (RallyEnding.UNFORCED_ERROR, RallyEnding.FORCED_ERROR):
            return winner.opponent
        if event.serve_outcome in _LOSER_STRUCK:
            return winner.opponent
        return winner

    @staticmethod
    def _process_conversion(
        conversion: dict[Player, ConversionStats], ctx: PointContext, winner: Player
    ) -> None:
        for player in ctx.game_point_for:
            conversion[player].game_points += 1
            if winner is player:
                conversion[player].game_points_won += 1

        breaker = ctx.break_point_for
        if breaker is None:
            return
        conversion[breaker].break_point_opportunities += 1
        conversion[breaker.opponent].break_points_faced += 1
        if winner is breaker:
            conversion[breaker].break_points_won += 1
        else:
            conversion[breaker.opponent].break_points_saved += 1

    # ── Percentages ──────────────────────────────────────────────────────────

    def _finalize(self, block: StatisticsBlock) -> None:
        for summary in block.points.values():
            summary.service_points_won_pct = _pct(
                summary.service_points_won, summary.service_points_played
            )
            summary.return_points_won_pct = _pct(
                summary.return_points_won, summary.return_points_played
            )
        if block.serve is not None:
            for serve in block.serve.values():
                serve.first_serve_pct = _pct(serve.first_serves_in, serve.first_serves)
        if block.timing is not None:
            timing = block.timing
            for player in Player:
                timed = timing.timed_points[player]
                timing.average_between_point_seconds[player] = (
                    round(timing.between_point_seconds[player] / timed, 1) if timed else 0.0
                )
            if timing.first_point_ms is not None:
                timing.duration_seconds = round(
                    (timing.last_point_ms - timing.first_point_ms) / 1000, 1
                )
        if block.conversion is not None:
            for conv in block.conversion.values():
                conv.break_point_conversion_pct = _pct(
                    conv.break_points_won, conv.break_point_opportunities
                )


def compute_statistics(
    events: Sequence[PointEvent],
    tracking_level: TrackingLevel,
    engine: Optional[ScoringEngine] = None,
) -> MatchStatistics:
    return StatsCalculator().compute_statistics(events, tracking_level, engine=engine)


def _zeros(enum_cls) -> dict[str, int]:
    return {member.value: 0 for member in enum_cls}


def _pct(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0
