"""Shared entity base classes and core entities."""
