"""libcheck - Arduino library compatibility checker.

Compiles third-party Arduino libraries against a matrix of boards and
aggregates the results into a compatibility report.
"""

__version__ = "0.1.0"
