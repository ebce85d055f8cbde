"""Core runtime services: logging, errors, hashing and transport."""
