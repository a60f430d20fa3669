"""
Test Suite

Contains unit tests for the stream client.

Structure:
- tests/unit/: Tests for individual components (schemas, channel, connection, manager)

Uses pytest with pytest-asyncio for testing async functionality.
"""
