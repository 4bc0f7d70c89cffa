"""ActionScore: habit scoring, streaks and goal-cycle planning."""

__version__ = "0.1.0"
