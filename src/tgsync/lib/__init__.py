"""Shared infrastructure: completion primitives, errors, config, logging, telemetry."""
