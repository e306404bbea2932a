"""Core infrastructure for condexpr: configuration and logging."""
