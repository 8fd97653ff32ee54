"""
RepoDB Test Suite.

This package contains:
- unit/: Unit tests (in-memory backends, mocked HTTP transport)
- integration/: Multi-session tests over a shared in-memory repository
"""
