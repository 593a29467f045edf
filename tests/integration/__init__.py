"""
Integration Tests - Cache, Handles and Backend Together.

These tests verify that all components work together correctly.
Integration tests use the InMemoryMarketplaceBackend to avoid external
dependencies.
"""
