"""Test fixtures for apm tests.

- sdk_repository: In-memory SDK repository (manifest and artifacts)
  served through the responses library.

Import fixtures in your tests using:
    from tests.fixtures.sdk_repository import sdk_repository
"""

__all__ = [
    "sdk_repository",
]
