"""Bounded-concurrency match scheduler.

A fixed pool of worker threads each plays one game to completion before the
next is handed out. Completed games are consumed by a single coordinating
loop, which yields results in completion order and only submits new work
while no stop has been requested.
"""

import threading
from collections.abc import Iterator, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable

from loguru import logger

from elobench.build import Executable
from elobench.errors import ScheduleError
from elobench.tournament.game import Game, GameResult, TimeControl

PlayFn = Callable[[Game], GameResult]


class MatchScheduler:
    """Schedules games between build A and build B.

    Example:
        scheduler = MatchScheduler(UCIMatchEngine(), candidate_exe, baseline_exe, tc)
        for result in scheduler.schedule(openings, concurrency=4, max_games=5000):
            ...
            if done:
                scheduler.stop()  # in-flight games still complete and are yielded
    """

    def __init__(
        self,
        play: PlayFn,
        engine_a: Executable,
        engine_b: Executable,
        time_control: TimeControl,
    ) -> None:
        """Initialize scheduler.

        Args:
            play: Plays one game to completion; called from worker threads.
            engine_a: Build A.
            engine_b: Build B.
            time_control: Time control of every game.
        """
        self.play = play
        self.engine_a = engine_a
        self.engine_b = engine_b
        self.time_control = time_control
        self._stop = threading.Event()

    def stop(self) -> None:
        """Request that no further games are started."""
        if not self._stop.is_set():
            logger.info("Stop requested, letting in-flight games finish")
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def plan(
        self, openings: Sequence[str], max_games: int, color_repeat: bool = True
    ) -> Iterator[Game]:
        """Generate the ordered games of a match.

        With ``color_repeat`` each opening is played twice, A as White first
        and then with colors swapped. Otherwise every game takes the next
        opening and colors still alternate. The opening pool cycles.
        """
        for index in range(max_games):
            if color_repeat:
                opening = openings[(index // 2) % len(openings)]
            else:
                opening = openings[index % len(openings)]
            yield Game(
                index=index,
                engine_a=self.engine_a,
                engine_b=self.engine_b,
                a_plays_white=index % 2 == 0,
                opening=opening,
                time_control=self.time_control,
            )

    def schedule(
        self,
        openings: Sequence[str],
        concurrency: int,
        max_games: int,
        color_repeat: bool = True,
    ) -> Iterator[GameResult]:
        """Play games and yield their results in completion order.

        Args:
            openings: Ordered opening-position pool (FEN strings).
            concurrency: Number of games played at once.
            max_games: Upper bound on games started.
            color_repeat: Replay each opening with colors swapped.

        Raises:
            ScheduleError: On invalid arguments, or after draining if a worker
                failed unexpectedly.
        """
        if concurrency < 1:
            raise ScheduleError(f"concurrency must be >= 1, got {concurrency}")
        if max_games < 1:
            raise ScheduleError(f"max_games must be >= 1, got {max_games}")
        if not openings:
            raise ScheduleError("Opening pool is empty")

        games = self.plan(openings, max_games, color_repeat)
        pending: dict[Future[GameResult], Game] = {}
        failure: BaseException | None = None

        with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="game") as pool:

            def fill() -> None:
                while len(pending) < concurrency and not self._stop.is_set():
                    game = next(games, None)
                    if game is None:
                        return
                    logger.debug(
                        f"Starting game {game.index + 1}: {game.white.name} vs {game.black.name}"
                    )
                    pending[pool.submit(self.play, game)] = game

            fill()
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in sorted(done, key=lambda f: pending[f].index):
                    game = pending.pop(future)
                    error = future.exception()
                    if error is not None:
                        logger.error(f"Game {game.index + 1} failed: {error!r}")
                        failure = failure or error
                        self.stop()
                        continue
                    yield future.result()
                fill()

        if failure is not None:
            raise ScheduleError(f"Match engine failure: {failure}") from failure
