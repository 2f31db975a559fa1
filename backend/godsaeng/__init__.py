"""Godsaeng study tracker backend."""
