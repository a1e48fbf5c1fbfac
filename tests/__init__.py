"""
Arise Economy Test Suite
========================

Test Organization
-----------------
- tests/unit/          : Fast unit tests (engine, services, client; in-memory repository)
- tests/integration/   : SQL repository and DatabaseService against SQLite (aiosqlite)
- tests/factories.py   : Clock and game state builders

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test business logic
- Integration tests: Slower, test real persistence interactions
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
