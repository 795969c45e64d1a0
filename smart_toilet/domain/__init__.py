"""Framework-agnostic domain models and reference data."""
