"""Core module - configuration, logging, errors and retry policies."""
