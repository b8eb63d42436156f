"""Core network resilience primitives for clubnet."""
