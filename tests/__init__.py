"""
DirAuth Test Suite

Test organization:
- unit/: Unit tests for individual modules
- property/: Property-based tests using Hypothesis
- doubles: Recording in-memory directory and account store
"""
