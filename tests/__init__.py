"""
Test Suite for Repacked.

Test organization:
    - unit/: Unit tests for individual components
    - integration/: Cache and adapters working together
    - fixtures/: Shared test fixtures and sample data

Running Tests:
    pytest tests/                           # All tests
    pytest tests/unit/                      # Unit tests only
    pytest tests/integration/               # Integration tests only
"""
