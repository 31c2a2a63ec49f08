"""Session metadata registry and title enrichment for tmux-hosted coding agents."""

__version__ = "0.3.0"

__all__ = ["__version__"]
