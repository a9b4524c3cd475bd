"""Kingdom builder idle-game simulation core."""

__version__ = "0.1.0"
