"""A small multiplayer city-building game: rules, TCP server and client, and a pygame window."""

__version__ = "0.1.0"