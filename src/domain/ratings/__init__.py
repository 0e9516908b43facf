"""Elo rating engine and match-log replay."""
