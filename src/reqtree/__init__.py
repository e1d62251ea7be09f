"""
reqtree - Request collection and tab state engine

Builds a tree of saved HTTP requests, opens them into editable tabs and
executes them, recording structured responses.
"""

__version__ = "0.1.0"
