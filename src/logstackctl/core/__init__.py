"""Core utilities shared by commands and the rollout engine."""
