"""
JSONL-based history storage for logged workout sessions.

Handles reading, writing, and querying the session history file, and
implements the HistoryProvider contract used by the context aggregator.
"""

import json
import logging
import os
from collections import defaultdict
from pathlib import Path
from typing import Sequence

from ..core.config import MAX_EXERCISE_ROWS
from ..core.models import (
    ExerciseHistory,
    ExerciseSessionHistory,
    HistoricalSet,
    SessionHistory,
    UserPreferences,
)
from .serializers import (
    ValidationError,
    dict_to_preferences,
    json_line_to_session,
    preferences_to_dict,
    session_to_json_line,
)

logger = logging.getLogger(__name__)


class HistoryStore:
    """
    Manages workout history stored in JSONL format.

    The history file contains one session object per line.  A separate
    preferences.json next to it stores the user's training preferences.
    """

    def __init__(self, history_path: str | Path):
        """
        Initialize the history store.

        Args:
            history_path: Path to the JSONL history file
        """
        self.history_path = Path(history_path)
        self.preferences_path = self.history_path.parent / "preferences.json"

    def exists(self) -> bool:
        """Check if the history file exists."""
        return self.history_path.exists()

    def init(self) -> None:
        """
        Initialize empty history file if it doesn't exist.

        Creates parent directories if needed.
        """
        self.history_path.parent.mkdir(parents=True, exist_ok=True)

        if not self.history_path.exists():
            self.history_path.touch()

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def load_preferences(self) -> UserPreferences:
        """
        Load preferences from preferences.json.

        Returns:
            Stored preferences, or defaults when the file is missing or invalid
        """
        if not self.preferences_path.exists():
            return UserPreferences()

        try:
            with open(self.preferences_path, "r") as f:
                data = json.load(f)
            return dict_to_preferences(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("ignoring invalid preferences in %s: %s", self.preferences_path, e)
            return UserPreferences()

    def save_preferences(self, prefs: UserPreferences) -> None:
        self.preferences_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.preferences_path, "w") as f:
            json.dump(preferences_to_dict(prefs), f, indent=2)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def load_history(self) -> list[SessionHistory]:
        """
        Load all sessions from the history file.

        Returns:
            List of SessionHistory, sorted by date (oldest first)

        Raises:
            FileNotFoundError: If history file doesn't exist
            ValidationError: If a line cannot be parsed
        """
        if not self.history_path.exists():
            raise FileNotFoundError(
                f"History file not found: {self.history_path}. Run 'init' first."
            )

        sessions: list[SessionHistory] = []

        with open(self.history_path, "r") as f:
            for line_num, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    sessions.append(json_line_to_session(line))
                except ValidationError as e:
                    raise ValidationError(
                        f"Error parsing line {line_num} in {self.history_path}: {e}"
                    ) from e

        sessions.sort(key=lambda s: (s.workout_date, s.session_id))
        return sessions

    def append_session(self, session: SessionHistory) -> None:
        """
        Add a session, replacing any stored session with the same id.

        Args:
            session: Session to store
        """
        if not self.history_path.exists():
            raise FileNotFoundError(
                f"History file not found: {self.history_path}. Run 'init' first."
            )

        sessions = [s for s in self.load_history() if s.session_id != session.session_id]
        sessions.append(session)
        sessions.sort(key=lambda s: (s.workout_date, s.session_id))
        self._write_sessions(sessions)

    def next_session_id(self) -> int:
        """Smallest unused session id (max + 1)."""
        try:
            sessions = self.load_history()
        except FileNotFoundError:
            return 1
        return max((s.session_id for s in sessions), default=0) + 1

    def _write_sessions(self, sessions: list[SessionHistory]) -> None:
        with open(self.history_path, "w") as f:
            for session in sessions:
                f.write(session_to_json_line(session) + "\n")

    # ------------------------------------------------------------------
    # HistoryProvider
    # ------------------------------------------------------------------

    def _newest_first(self, sessions: list[SessionHistory], limit: int) -> list[SessionHistory]:
        ordered = sorted(sessions, key=lambda s: (s.workout_date, s.session_id), reverse=True)
        return ordered[: max(0, limit)]

    def fetch_sessions_by_template(
        self, user_id: str, template_ids: Sequence[int], limit: int
    ) -> list[SessionHistory]:
        """
        Most recent sessions logged from any of the given templates.

        The store holds a single user's history, so user_id is not filtered on.
        """
        wanted = set(template_ids)
        sessions = [s for s in self.load_history() if s.template_id in wanted]
        return self._newest_first(sessions, limit)

    def fetch_sessions_by_exercise(
        self, user_id: str, exercise_ids: Sequence[int], limit: int
    ) -> list[SessionHistory]:
        """
        Most recent sessions containing any of the given master exercises.

        Only the matching exercise rows are kept in each returned session.
        At most MAX_EXERCISE_ROWS rows are returned, newest first, so the
        oldest session kept may be cut short.
        """
        wanted = set(exercise_ids)
        sessions = []
        rows_left = MAX_EXERCISE_ROWS
        # load_history is oldest first
        for s in reversed(self.load_history()):
            if rows_left <= 0:
                break
            rows = [ex for ex in s.exercises if ex.master_exercise_id in wanted][:rows_left]
            if rows:
                rows_left -= len(rows)
                sessions.append(
                    SessionHistory(
                        session_id=s.session_id,
                        workout_date=s.workout_date,
                        template_id=s.template_id,
                        template_name=s.template_name,
                        exercises=rows,
                    )
                )
        return self._newest_first(sessions, limit)

    # ------------------------------------------------------------------
    # Per-exercise views for session prescriptions
    # ------------------------------------------------------------------

    def load_exercise_history(
        self, exercise_names: Sequence[str], sessions_per_exercise: int = 2
    ) -> dict[str, ExerciseHistory]:
        """
        Recent per-exercise history keyed by exercise name.

        Each logged row expands into `sets` identical HistoricalSets.

        Args:
            exercise_names: Resolved exercise names to look up
            sessions_per_exercise: Sessions kept per exercise (newest first)
        """
        wanted = set(exercise_names)
        by_name: dict[str, list[ExerciseSessionHistory]] = defaultdict(list)

        if not self.exists():
            return {}

        for session in reversed(self.load_history()):
            grouped: dict[str, list[HistoricalSet]] = defaultdict(list)
            for row in session.exercises:
                if row.name not in wanted:
                    continue
                per_set_volume = (row.weight or 0.0) * (row.reps or 0)
                grouped[row.name].extend(
                    HistoricalSet(weight=row.weight, reps=row.reps, volume=per_set_volume)
                    for _ in range(max(1, row.sets))
                )
            for name, sets in grouped.items():
                if len(by_name[name]) < sessions_per_exercise:
                    by_name[name].append(
                        ExerciseSessionHistory(workout_date=session.workout_date, sets=sets)
                    )

        return {
            name: ExerciseHistory(exercise_name=name, sessions=sessions)
            for name, sessions in by_name.items()
        }


def get_default_history_path() -> Path:
    """
    Get the default history file path.

    LIFT_PLANNER_HOME overrides the ~/.lift-planner data directory.

    Returns:
        Default history path
    """
    base = Path(os.environ.get("LIFT_PLANNER_HOME") or Path.home() / ".lift-planner")
    return base / "history.jsonl"
