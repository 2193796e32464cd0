"""Command line interface for issueview."""
