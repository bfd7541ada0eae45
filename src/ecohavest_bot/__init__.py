"""Ecohavest community bot: keyword replies, member welcomes and scheduled crypto digests."""

__version__ = "1.0.0"
