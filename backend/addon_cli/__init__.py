"""Command line client for the catalog addon."""
