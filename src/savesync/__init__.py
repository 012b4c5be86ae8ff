"""SaveSync - named save locations with deterministic archive snapshots."""

__version__ = "1.0.0"
