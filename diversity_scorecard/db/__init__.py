"""SQLite persistence for graded scorecards."""
