"""rollout - release-based deployment and rollback."""

__version__ = "0.1.0"
