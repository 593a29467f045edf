"""
Test Fixtures - Shared Test Data and Configurations.

This package contains reusable test fixtures:
    - sample_config.yaml: Configuration overriding a few cache settings
      and adding a custom namespace

Usage:
    Load through the `sample_config_path` fixture in tests/conftest.py.
"""
