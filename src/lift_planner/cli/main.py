"""
CLI entry point using Typer.

Provides commands for readiness-driven training:
- init: Create the history file and store preferences
- log-session: Log a completed session
- show-history: Display logged sessions
- readiness: Compute today's readiness score
- prescribe: Prescribe today's sets from readiness and history
- recovery: Rest, active recovery or a lighter session for today
- suggest: Next-session progression suggestions
- context: Show the planning context
- plan: Generate a periodized multi-week plan
- one-rm: Estimate one-rep maxes
- forecast: Forecast the next PR per exercise
"""

from .app import app
from .commands import planning, readiness, sessions  # noqa: F401  (registers commands)


if __name__ == "__main__":
    app()
