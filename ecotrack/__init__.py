"""EcoTrack: daily sustainability checklist with check-in streaks."""

__version__ = "0.1.0"
