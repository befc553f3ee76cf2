"""freshgit - keep a local mirror of many git repositories up to date."""

__version__ = "0.3.0"
