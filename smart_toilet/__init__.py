"""Health-record reconciliation for the Smart Toilet monitoring product.

This package contains the domain models and the business logic that turn
independently captured sensor and chemistry sessions into classified health
records, isolated from Firebase so it can be tested and reasoned about alone.
"""
