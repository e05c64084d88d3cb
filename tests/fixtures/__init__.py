"""Shared test fixtures for gitchat."""
