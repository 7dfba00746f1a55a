"""Reusable test fixtures."""
