"""gitscan: discover local git repositories and report their sync status."""

__version__ = '0.1.0'
