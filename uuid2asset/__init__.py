"""Rebuilds a game's asset tree from its bundle manifests."""

__version__ = "1.0.0"
