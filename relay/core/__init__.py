"""Core relay logic: configuration, shared types and the command router."""
