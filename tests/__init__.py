"""
CraftLink Test Suite
====================

Test Organization
-----------------
- tests/unit/   : Fast unit tests with fakes and mocks (no Discord, no server)
- conftest.py   : In-memory host, scriptable fake managers, config fixtures

Testing Philosophy
------------------
- Drive managers through their public coroutines
- Fake the Discord client and the Minecraft host, never the code under test
- Follow AAA pattern: Arrange, Act, Assert
"""
