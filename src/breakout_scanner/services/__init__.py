"""Service layer for the breakout scanner."""
