"""Mutual fund screener service."""
