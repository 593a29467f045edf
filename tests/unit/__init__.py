"""
Unit Tests - Testing Individual Components in Isolation.

Each component is tested in isolation with fake collaborators.
Unit tests should be fast, deterministic, and focused.

Test Files:
    - test_cache_manager.py: TTL, persistence, namespaces, sweep
    - test_session_store.py: Memory and file session stores
    - test_namespaces.py: Namespace facades and policies
    - test_cached_data.py: Cache-first fetch handles
    - test_cached_resources.py: Entity handles over the mock backend
    - test_avatar.py: Avatar blobs and object URL lifecycle
    - test_realtime.py: Change events to cache updates
    - test_config_loader.py: Configuration loading/validation
"""
