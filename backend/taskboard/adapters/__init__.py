"""Persistence adapters that load and save whole datasets."""
