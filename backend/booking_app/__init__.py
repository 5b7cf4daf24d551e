"""Organizer availability, slot generation and conflict-safe booking."""
