"""Core infrastructure: configuration, logging, errors, time and ids."""
