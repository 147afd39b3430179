"""Webapp assembly: structure registry, overlays, filtering and archives."""
