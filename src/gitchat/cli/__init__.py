"""Command-line interface for gitchat."""
