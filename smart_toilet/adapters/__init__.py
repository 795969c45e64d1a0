"""Adapters binding the health services to concrete stores."""
