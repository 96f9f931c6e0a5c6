"""
Game State Management for Trivia Pursuit

Key rules implemented:
- Everybody starts on the hub
- Roll one die (1-6) and move exactly that many spaces
- A move may never step straight back onto the space it just left
- Landing on a Roll Again space means rolling again, no question
- Any other space asks a question in that space's category
- A correct answer lets the same player roll again
- A correct answer on a wedge headquarters awards that category's wedge
- Collecting all 6 wedges wins the game
- A wrong answer passes the turn to the next player

Events that do not fit the current phase (rolling twice, moving to a space
outside the legal destinations, answering before the question arrived) are
ignored: the method returns False and the state is left untouched.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Callable, List, Optional, Set

from trivia_pursuit import arbiter
from trivia_pursuit.board import Board, BoardSpace, Category, SCORABLE_CATEGORIES, get_board
from trivia_pursuit.questions import (
    CrewQuestionSource,
    Question,
    SUPPORTED_LANGUAGES,
    fallback_question,
)


logger = logging.getLogger(__name__)


class GamePhase(Enum):
    AWAITING_ROLL = "awaiting_roll"
    AWAITING_MOVE = "awaiting_move"
    AWAITING_ANSWER = "awaiting_answer"
    FINISHED = "finished"


class AccuracyLevel(IntEnum):
    """Chance (in percent) that a computer player answers correctly.

    For human players it is passed to the quizmaster as a difficulty hint.
    """
    WALK_IN_THE_PARK = 30
    ON_AND_ON = 50
    UNBEATABLE = 80


# Seconds to wait for the question source before using the fallback question
DEFAULT_QUESTION_TIMEOUT = 60.0

PLAYER_COLORS = [
    "#ef4444",  # Red
    "#3b82f6",  # Blue
    "#22c55e",  # Green
    "#eab308",  # Yellow
    "#a855f7",  # Purple
    "#ec4899",  # Pink
]
AUTOMATED_PLAYER_COLOR = "#a855f7"

MIN_PLAYERS = 1
MAX_PLAYERS = 6
WEDGES_TO_WIN = len(SCORABLE_CATEGORIES)


@dataclass
class PlayerConfig:
    """Settings chosen for one seat before the match starts."""
    name: str
    accuracy: AccuracyLevel = AccuracyLevel.ON_AND_ON
    is_automated: bool = False


@dataclass
class Player:
    """Represents a player in the game."""
    id: int
    name: str
    color: str
    is_automated: bool = False
    accuracy: AccuracyLevel = AccuracyLevel.ON_AND_ON
    position: int = 0  # board space id
    wedges: Set[Category] = field(default_factory=set)
    total_time_ms: int = 0

    @property
    def has_all_wedges(self) -> bool:
        return len(self.wedges) >= WEDGES_TO_WIN

    def award_wedge(self, category: Category) -> bool:
        """Add a wedge. Returns False if it was already collected or is not scorable."""
        if category not in SCORABLE_CATEGORIES or category in self.wedges:
            return False
        self.wedges.add(category)
        return True


@dataclass(frozen=True)
class QuestionRequest:
    """A question asked for a specific match, player and space.

    The answer to a request is only used while the game is still in exactly
    this situation.
    """
    match_id: int
    serial: int
    player_index: int
    position: int
    category: Category
    language: str
    accuracy: AccuracyLevel


@dataclass
class MatchState:
    """Mutable state of a single match."""
    players: List[Player] = field(default_factory=list)
    current_player_index: int = 0
    phase: GamePhase = GamePhase.AWAITING_ROLL
    dice_value: Optional[int] = None
    legal_destinations: Set[int] = field(default_factory=set)
    current_question: Optional[Question] = None
    winner_id: Optional[int] = None
    language: str = "en"
    turn_started_at: float = 0.0
    match_id: int = 0


@dataclass(frozen=True)
class PlayerSnapshot:
    id: int
    name: str
    color: str
    is_automated: bool
    accuracy: AccuracyLevel
    position: int
    wedges: frozenset
    total_time_ms: int


@dataclass(frozen=True)
class MatchSnapshot:
    """Read-only view of the match handed to renderers after each transition."""
    match_id: int
    phase: GamePhase
    current_player_index: int
    dice_value: Optional[int]
    legal_destinations: frozenset
    current_question: Optional[Question]
    winner_id: Optional[int]
    language: str
    players: tuple


class TriviaGame:
    """
    Owns one match and applies player events to it.

    The game is single-threaded: every event runs to completion. The only
    suspension point is the question fetch, during which the phase is
    AWAITING_ANSWER with no question yet, so every event except new_match is
    rejected until the question arrives. A source that does not answer
    within question_timeout seconds is treated as failed.
    """

    def __init__(self, board: Optional[Board] = None, question_source=None,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.monotonic,
                 question_timeout: Optional[float] = DEFAULT_QUESTION_TIMEOUT):
        self.board = board or get_board()
        self.question_source = question_source or CrewQuestionSource()
        self.rng = rng or random.Random()
        self.clock = clock
        self.question_timeout = question_timeout
        self.state: Optional[MatchState] = None
        self._next_match_id = 1
        self._request_serial = 0
        self._pending_request: Optional[QuestionRequest] = None
        self._listeners: List[Callable[[MatchSnapshot], None]] = []

    # ========================================================================
    # SETUP
    # ========================================================================

    def new_match(self, player_configs: List[PlayerConfig], language: str = "en",
                  first_player_index: Optional[int] = None) -> MatchState:
        """
        Start a fresh match, discarding any previous one.

        The starting player is random unless first_player_index is given.
        A question still being fetched for the previous match is ignored
        when it arrives.

        Raises:
            ValueError: for an empty or oversized roster, an unknown language
                or an out-of-range first player
        """
        if not MIN_PLAYERS <= len(player_configs) <= MAX_PLAYERS:
            raise ValueError(
                f"A match needs {MIN_PLAYERS}-{MAX_PLAYERS} players, got {len(player_configs)}"
            )
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        if first_player_index is None:
            first_player_index = self.rng.randrange(len(player_configs))
        elif not 0 <= first_player_index < len(player_configs):
            raise ValueError(f"first_player_index {first_player_index} is out of range")

        players = []
        for index, config in enumerate(player_configs):
            color = AUTOMATED_PLAYER_COLOR if config.is_automated else PLAYER_COLORS[index % len(PLAYER_COLORS)]
            players.append(Player(
                id=index,
                name=config.name,
                color=color,
                is_automated=config.is_automated,
                accuracy=AccuracyLevel(config.accuracy),
                position=self.board.hub_id,
            ))

        self.state = MatchState(
            players=players,
            current_player_index=first_player_index,
            phase=GamePhase.AWAITING_ROLL,
            language=language,
            turn_started_at=self.clock(),
            match_id=self._next_match_id,
        )
        self._next_match_id += 1
        self._pending_request = None

        logger.info(f"Match {self.state.match_id} started with {len(players)} players, "
                    f"{players[first_player_index].name} goes first")
        self._notify()
        return self.state

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_current_player(self) -> Optional[Player]:
        if self.state is None or not self.state.players:
            return None
        return self.state.players[self.state.current_player_index]

    def get_player_space(self, player: Player) -> BoardSpace:
        return self.board.get_space(player.position)

    @property
    def pending_request(self) -> Optional[QuestionRequest]:
        return self._pending_request

    # ========================================================================
    # TRANSITIONS
    # ========================================================================

    def roll_dice(self) -> Optional[int]:
        """
        Roll one six-sided die for the active player.

        Returns the rolled value, or None if rolling is not allowed right now.
        A roll that leaves no legal destination ends the turn as if the player
        had answered wrong.
        """
        if not self._in_phase(GamePhase.AWAITING_ROLL, "roll"):
            return None

        state = self.state
        player = self.get_current_player()
        roll = self.rng.randint(1, 6)
        destinations = self.board.reachable(player.position, roll)

        if not destinations:
            logger.info(f"{player.name} rolled {roll} but has nowhere to go, turn passes")
            self._record_turn_time(player)
            state.dice_value = None
            state.legal_destinations = set()
            self._pass_turn()
            self._notify()
            return roll

        state.dice_value = roll
        state.legal_destinations = destinations
        state.phase = GamePhase.AWAITING_MOVE
        logger.debug(f"{player.name} rolled {roll}: {sorted(destinations)}")
        self._notify()
        return roll

    def choose_destination(self, space_id: int) -> bool:
        """
        Move the active player to one of the legal destinations.

        Roll Again spaces send the player straight back to rolling. Every other
        space opens a question request; call fetch_question() to resolve it.
        """
        if not self._in_phase(GamePhase.AWAITING_MOVE, "move"):
            return False

        state = self.state
        if space_id not in state.legal_destinations:
            logger.debug(f"Ignoring move to {space_id}: not a legal destination")
            return False

        player = self.get_current_player()
        space = self.board.get_space(space_id)
        player.position = space_id
        state.legal_destinations = set()

        if space.is_roll_again:
            state.dice_value = None
            state.phase = GamePhase.AWAITING_ROLL
            logger.debug(f"{player.name} landed on Roll Again ({space_id})")
            self._notify()
            return True

        state.phase = GamePhase.AWAITING_ANSWER
        state.current_question = None
        self._request_serial += 1
        self._pending_request = QuestionRequest(
            match_id=state.match_id,
            serial=self._request_serial,
            player_index=state.current_player_index,
            position=space_id,
            category=space.category,
            language=state.language,
            accuracy=player.accuracy,
        )
        logger.debug(f"{player.name} moved to {space_id} ({space.category.value}), question requested")
        self._notify()
        return True

    async def fetch_question(self) -> bool:
        """
        Ask the question source for the pending request and deliver it.

        Failures and timeouts of the source never escape: a single-option
        fallback question is delivered instead. Returns whether the question was applied.
        """
        request = self._pending_request
        if request is None:
            return False

        try:
            question = await asyncio.wait_for(
                self.question_source(request.category, request.language, request.accuracy),
                timeout=self.question_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Question source timed out after {self.question_timeout}s, using fallback question")
            question = None
        except Exception as e:
            logger.warning(f"Question source failed, using fallback question: {e}")
            question = None

        if not isinstance(question, Question):
            question = fallback_question(request.category, request.language)

        return self.deliver_question(request, question)

    def deliver_question(self, request: QuestionRequest, question: Question) -> bool:
        """Apply a fetched question, unless the game has moved on since it was requested."""
        state = self.state
        if (
            state is None
            or request is not self._pending_request
            or state.match_id != request.match_id
            or state.phase != GamePhase.AWAITING_ANSWER
            or state.current_question is not None
            or state.current_player_index != request.player_index
            or self.get_current_player().position != request.position
        ):
            logger.debug(f"Dropping stale question for request {request.serial}")
            return False

        state.current_question = question
        self._pending_request = None
        self._notify()
        return True

    async def move_to(self, space_id: int) -> bool:
        """Choose a destination and, if it needs one, wait for the question."""
        if not self.choose_destination(space_id):
            return False
        if self._pending_request is not None:
            await self.fetch_question()
        return True

    def answer_question(self, option_index: int) -> bool:
        """
        Answer the current question.

        Correct: award the wedge when standing on an uncollected HQ, finish the
        match on the sixth wedge, otherwise the same player rolls again.
        Wrong: the turn passes to the next player.
        """
        if not self._in_phase(GamePhase.AWAITING_ANSWER, "answer"):
            return False

        state = self.state
        question = state.current_question
        if question is None:
            logger.debug("Ignoring answer: question has not arrived yet")
            return False
        if not 0 <= option_index < len(question.options):
            logger.debug(f"Ignoring answer: option {option_index} out of range")
            return False

        player = self.get_current_player()
        self._record_turn_time(player)
        state.current_question = None
        state.dice_value = None

        if question.is_correct(option_index):
            space = self.get_player_space(player)
            if space.is_wedge_hq and player.award_wedge(space.category):
                logger.info(f"{player.name} collected the {space.category.value} wedge "
                            f"({len(player.wedges)}/{WEDGES_TO_WIN})")
            if player.has_all_wedges:
                state.phase = GamePhase.FINISHED
                state.winner_id = player.id
                logger.info(f"{player.name} wins match {state.match_id}")
            else:
                state.phase = GamePhase.AWAITING_ROLL
        else:
            self._pass_turn()

        self._notify()
        return True

    async def advance_automated(self) -> bool:
        """
        Take one step for the active player if it is a computer player.

        Returns False when there is nothing to do (human's turn, match over or
        waiting on a question that is being fetched elsewhere).
        """
        player = self.get_current_player()
        if player is None or not player.is_automated:
            return False

        state = self.state
        if state.phase == GamePhase.AWAITING_ROLL:
            return self.roll_dice() is not None

        if state.phase == GamePhase.AWAITING_MOVE:
            target = arbiter.choose_destination(self.board, player, state.legal_destinations, self.rng)
            if target is None:
                return False
            return await self.move_to(target)

        if state.phase == GamePhase.AWAITING_ANSWER:
            if state.current_question is None:
                if self._pending_request is None:
                    return False
                return await self.fetch_question()
            option = arbiter.decide_answer(player, state.current_question, self.rng)
            return self.answer_question(option)

        return False

    async def play_automated(self, max_steps: int = 10_000) -> int:
        """Run computer players until a human must act or the match ends. Returns steps taken."""
        steps = 0
        while steps < max_steps and await self.advance_automated():
            steps += 1
        return steps

    # ========================================================================
    # SNAPSHOTS
    # ========================================================================

    def subscribe(self, listener: Callable[[MatchSnapshot], None]) -> None:
        """Register a callback that receives a snapshot after every accepted event.

        Registering the same callback again has no effect.
        """
        if listener not in self._listeners:
            self._listeners.append(listener)

    def snapshot(self) -> Optional[MatchSnapshot]:
        state = self.state
        if state is None:
            return None
        return MatchSnapshot(
            match_id=state.match_id,
            phase=state.phase,
            current_player_index=state.current_player_index,
            dice_value=state.dice_value,
            legal_destinations=frozenset(state.legal_destinations),
            current_question=state.current_question,
            winner_id=state.winner_id,
            language=state.language,
            players=tuple(
                PlayerSnapshot(
                    id=p.id,
                    name=p.name,
                    color=p.color,
                    is_automated=p.is_automated,
                    accuracy=p.accuracy,
                    position=p.position,
                    wedges=frozenset(p.wedges),
                    total_time_ms=p.total_time_ms,
                )
                for p in state.players
            ),
        )

    def get_game_summary(self) -> str:
        """Get a summary of the current game state."""
        state = self.state
        if state is None:
            return "No match in progress\n"

        summary = f"=== Match {state.match_id} ({state.phase.value}) ===\n"
        summary += f"Current Player: {self.get_current_player().name}\n"
        if state.dice_value is not None:
            summary += f"Dice: {state.dice_value}\n"
        summary += "\n"

        for player in state.players:
            kind = "Computer" if player.is_automated else "Human"
            space = self.get_player_space(player)
            wedges = ", ".join(sorted(c.value for c in player.wedges)) or "none"
            summary += (f"{player.name} ({kind}): space {space.id} ({space.category.value}), "
                        f"wedges {len(player.wedges)}/{WEDGES_TO_WIN} [{wedges}], "
                        f"time {player.total_time_ms // 1000}s\n")

        if state.winner_id is not None:
            summary += f"\nWinner: {state.players[state.winner_id].name}\n"
        return summary

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _in_phase(self, phase: GamePhase, action: str) -> bool:
        if self.state is None:
            logger.debug(f"Ignoring {action}: no match in progress")
            return False
        if self.state.phase != phase:
            logger.debug(f"Ignoring {action} during {self.state.phase.value}")
            return False
        return True

    def _record_turn_time(self, player: Player) -> None:
        now = self.clock()
        player.total_time_ms += int((now - self.state.turn_started_at) * 1000)
        self.state.turn_started_at = now

    def _pass_turn(self) -> None:
        state = self.state
        state.current_player_index = (state.current_player_index + 1) % len(state.players)
        state.phase = GamePhase.AWAITING_ROLL

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in self._listeners:
            listener(snapshot)
