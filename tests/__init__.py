"""
GameVault Test Suite
====================

Test Organization
-----------------
- tests/unit/          : Fast unit tests with mocks (no database)
- tests/integration/   : Integration tests against a real database (SQLite
                         by default, PostgreSQL testcontainer when
                         GAMEVAULT_TEST_POSTGRES=1)

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test business logic
- Integration tests: Slower, test real infrastructure interactions
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
