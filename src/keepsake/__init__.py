"""Keepsake: identity visibility for shared memories."""
