"""Query analysis, planning, index file formats, result printing and a line client for a small database."""

__version__ = "0.1.0"