"""Reusable pytest fixtures for synckit tests."""
