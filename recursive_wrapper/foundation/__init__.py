"""Dependency-light helpers shared by the host and the plugin."""
