"""
Tennis Scoring Engine — State machine from point events to a match result.

Implements:
- Ad scoring (deuce/advantage) and no-ad scoring (sudden-death deciding point)
- Game counting within sets with format-specific games per set
- Set tiebreaks at the format's trigger score, with per-set targets
  (7-point, deciding-set 10-point, custom overrides)
- Tiebreak-only formats (7, 10 and 21 points)
- Server rotation, including the one-then-two tiebreak pattern
- Rejection of malformed points as ScoringError values

Transitions are pure: ``apply`` never mutates the state it is given.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

from matchtrack.models.errors import ScoringError, ScoringErrorCode
from matchtrack.models.events import PointEvent, ServeOutcome
from matchtrack.models.match import (
    EffectiveRules,
    GameScore,
    MatchState,
    MatchStatus,
    Player,
    PointContext,
    SetRecord,
    TiebreakScore,
    TrackingLevel,
)

logger = logging.getLogger("matchtrack.engine.scoring")


# Serve outcomes that settle who won the point.
SERVER_WINS = frozenset({ServeOutcome.ACE, ServeOutcome.RETURN_ERROR, ServeOutcome.FORCED_RETURN_ERROR})
RECEIVER_WINS = frozenset({ServeOutcome.DOUBLE_FAULT, ServeOutcome.RETURN_WINNER})


class ScoringEngine:
    """
    Tennis scoring state machine over resolved rules.

    Usage:
        engine = ScoringEngine(rules, initial_server=Player.P1)
        state = engine.initial_state()
        result = engine.apply(state, PointEvent(winner=Player.P1))
        if isinstance(result, ScoringError):
            ...
    """

    def __init__(
        self,
        rules: EffectiveRules,
        initial_server: Player = Player.P1,
        tracking_level: TrackingLevel = TrackingLevel.LEVEL_3,
    ):
        self.rules = rules
        self.initial_server = Player(initial_server)
        self.tracking_level = TrackingLevel(tracking_level)
        self._simulating = False

    # ── Public API ───────────────────────────────────────────────────────────

    def initial_state(self) -> MatchState:
        """First set, first game, 0-0, configured server."""
        state = MatchState(server=self.initial_server)
        if self.rules.is_tiebreak_only_format:
            state.current_game = GameScore(
                is_tiebreak=True, tiebreak_first_server=self.initial_server
            )
        return state

    def apply(self, state: MatchState, event: PointEvent) -> Union[MatchState, ScoringError]:
        """Apply one point and return the new state, or the reason it was rejected."""
        error = self.validate(state, event)
        if error is not None:
            logger.warning("Rejected point #%s: %s", event.sequence_no, error.message)
            return error

        new_state = state.model_copy(deep=True)
        self._score_point(new_state, Player(event.winner))
        logger.debug(
            "Point #%s to %s → %s",
            event.sequence_no, Player(event.winner).value, new_state.score_display,
        )
        return new_state

    def fold(
        self,
        events: Iterable[PointEvent],
        state: Optional[MatchState] = None,
    ) -> Union[MatchState, ScoringError]:
        """Replay events from ``state`` (or the initial state)."""
        current = state if state is not None else self.initial_state()
        for event in events:
            result = self.apply(current, event)
            if isinstance(result, ScoringError):
                return result
            current = result
        return current

    def validate(self, state: MatchState, event: PointEvent) -> Optional[ScoringError]:
        """Check a point against the current state without applying it."""
        seq = event.sequence_no or None

        if state.is_complete:
            return ScoringError(
                code=ScoringErrorCode.MATCH_ALREADY_COMPLETE,
                message=f"Match already won by {state.match_winner.value}",
                sequence_no=seq,
            )

        try:
            winner = Player(event.winner)
        except ValueError:
            return ScoringError(
                code=ScoringErrorCode.UNKNOWN_WINNER,
                message=f"Point winner must be p1 or p2, got {event.winner!r}",
                sequence_no=seq,
            )

        in_tiebreak = state.current_game.is_tiebreak
        if event.tiebreak is not None and event.tiebreak != in_tiebreak:
            message = (
                "Tiebreak point recorded outside a tiebreak"
                if event.tiebreak
                else "Regular point recorded during a tiebreak"
            )
            return ScoringError(
                code=ScoringErrorCode.EVENT_OUTSIDE_TIEBREAK_WINDOW,
                message=message,
                sequence_no=seq,
            )

        if event.serving_player is not None and Player(event.serving_player) is not state.server:
            return ScoringError(
                code=ScoringErrorCode.SERVER_MISMATCH,
                message=f"{state.server.value} is serving, event names {event.serving_player.value}",
                sequence_no=seq,
            )

        untracked = event.untracked_fields(self.tracking_level)
        if untracked:
            return ScoringError(
                code=ScoringErrorCode.DETAIL_NOT_TRACKED,
                message=(
                    f"{self.tracking_level.display_name} does not record: "
                    f"{', '.join(sorted(untracked))}"
                ),
                sequence_no=seq,
            )

        return self._validate_detail(state, event, winner, seq)

    def point_context(self, state: MatchState) -> PointContext:
        """Classify the next point as game/break/set/match point for each player."""
        ctx = PointContext(server=state.server, is_tiebreak=state.current_game.is_tiebreak)
        if state.is_complete:
            return ctx

        for player in Player:
            after = state.model_copy(deep=True)
            self._simulating = True
            try:
                self._score_point(after, player)
            finally:
                self._simulating = False
            # A concluded game or tiebreak leaves the game score reset.
            if after.current_game.total_points != 0:
                continue
            ctx.game_point_for.append(player)
            if not ctx.is_tiebreak and player is not state.server:
                ctx.break_point_for = player
            if after.sets_won(player) > state.sets_won(player):
                ctx.set_point_for.append(player)
            if after.is_complete:
                ctx.match_point_for.append(player)
        return ctx

    def is_deciding_point(self, state: MatchState) -> bool:
        """No-ad 3-3: the next point decides the game."""
        g = state.current_game
        return (
            self.rules.no_ad_scoring
            and not g.is_tiebreak
            and g.p1_points == 3
            and g.p2_points == 3
        )

    # ── Validation ───────────────────────────────────────────────────────────

    def _validate_detail(
        self, state: MatchState, event: PointEvent, winner: Player, seq: Optional[int]
    ) -> Optional[ScoringError]:
        outcome = event.serve_outcome
        if outcome in SERVER_WINS and winner is not state.server:
            return self._detail_error(f"A {outcome.value} is won by the server", seq)
        if outcome in RECEIVER_WINS and winner is state.server:
            return self._detail_error(f"A {outcome.value} is won by the receiver", seq)
        if event.rally_ending is not None and outcome not in (None, ServeOutcome.IN_PLAY):
            return self._detail_error(
                f"A point ended by {outcome.value} has no rally ending", seq
            )
        if event.deciding_point_side is not None and not self.is_deciding_point(state):
            return self._detail_error(
                "Receiver side choice only applies to a no-ad deciding point", seq
            )
        return None

    @staticmethod
    def _detail_error(message: str, seq: Optional[int]) -> ScoringError:
        return ScoringError(
            code=ScoringErrorCode.INVALID_EVENT_DETAIL, message=message, sequence_no=seq
        )

    # ── Point scoring ────────────────────────────────────────────────────────

    def _score_point(self, state: MatchState, winner: Player) -> None:
        game = state.current_game
        game.add_point(winner)
        state.points_played += 1

        if game.is_tiebreak:
            self._score_tiebreak_point(state, winner)
        elif self._is_game_won(game, winner):
            self._award_game(state, winner)

    def _is_game_won(self, game: GameScore, winner: Player) -> bool:
        won = game.points(winner)
        lost = game.points(winner.opponent)
        if self.rules.no_ad_scoring:
            return won >= 4
        return won >= 4 and won - lost >= 2

    # ── Tiebreak scoring ─────────────────────────────────────────────────────

    def _score_tiebreak_point(self, state: MatchState, winner: Player) -> None:
        game = state.current_game
        target = self.rules.tiebreak_target(state.current_set_index)
        won = game.points(winner)
        lost = game.points(winner.opponent)

        if won >= target and won - lost >= 2:
            self._finish_tiebreak(state, winner)
            return

        state.server = self._tiebreak_server(game)

    @staticmethod
    def _tiebreak_server(game: GameScore) -> Player:
        """Server of the next tiebreak point: A, then B B, A A, B B ..."""
        next_point = game.total_points + 1
        if (next_point // 2) % 2 == 0:
            return game.tiebreak_first_server
        return game.tiebreak_first_server.opponent

    def _start_tiebreak(self, state: MatchState) -> None:
        if not self._simulating:
            logger.debug(
                "Tiebreak to %d in set %d",
                self.rules.tiebreak_target(state.current_set_index),
                state.current_set_index + 1,
            )
        state.current_game = GameScore(is_tiebreak=True, tiebreak_first_server=state.server)

    def _finish_tiebreak(self, state: MatchState, winner: Player) -> None:
        game = state.current_game
        current_set = state.current_set
        current_set.tiebreak = TiebreakScore(p1_points=game.p1_points, p2_points=game.p2_points)

        if self.rules.is_tiebreak_only_format:
            current_set.winner = winner
            self._complete_match(state, winner)
            return

        # The tiebreak counts as one game; its first receiver opens the next set.
        current_set.add_game(winner)
        state.server = game.tiebreak_first_server.opponent
        self._finalize_set(state, winner)

    # ── Game & set management ────────────────────────────────────────────────

    def _award_game(self, state: MatchState, winner: Player) -> None:
        current_set = state.current_set
        current_set.add_game(winner)
        state.server = state.server.opponent

        if self._is_set_won(current_set, winner):
            self._finalize_set(state, winner)
        elif self._should_start_tiebreak(current_set):
            self._start_tiebreak(state)
        else:
            state.current_game = GameScore()

    def _is_set_won(self, current_set: SetRecord, winner: Player) -> bool:
        games = current_set.games(winner)
        opp_games = current_set.games(winner.opponent)
        return games >= self.rules.games_per_set and games - opp_games >= 2

    def _should_start_tiebreak(self, current_set: SetRecord) -> bool:
        tb_at = self.rules.tiebreak_at
        return current_set.p1_games == tb_at and current_set.p2_games == tb_at

    def _finalize_set(self, state: MatchState, winner: Player) -> None:
        current_set = state.current_set
        current_set.winner = winner
        if not self._simulating:
            logger.info(
                "Set %d to %s (%d-%d)",
                state.current_set_index + 1, winner.value,
                current_set.p1_games, current_set.p2_games,
            )

        if state.sets_won(winner) >= self.rules.sets_to_win:
            self._complete_match(state, winner)
            return

        state.sets.append(SetRecord())
        state.current_set_index += 1
        state.current_game = GameScore()

    def _complete_match(self, state: MatchState, winner: Player) -> None:
        state.match_winner = winner
        state.is_complete = True
        state.status = MatchStatus.COMPLETE
        state.current_game = GameScore()
        if not self._simulating:
            logger.info("Match to %s: %s", winner.value, state.score_display)
