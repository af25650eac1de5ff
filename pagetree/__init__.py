"""Copy-on-write B+tree over fixed-size byte pages, with an in-memory page store."""

__version__ = "0.1.0"