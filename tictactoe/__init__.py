"""
Tic-tac-toe match arbiter.

Records and adjudicates two-player games on an N x N board with a
configurable win-run length.
"""

__version__ = "1.0.0"
