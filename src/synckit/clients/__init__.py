"""Backend client helpers."""
