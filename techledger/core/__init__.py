"""Core building blocks shared across layers."""
