"""Clinical trial diversity scorecard: demographic grading, similar-trial search, reports."""

__version__ = "0.1.0"
