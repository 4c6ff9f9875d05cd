"""Helpers shared by the modules of the package."""
