"""
TBURN Tokens Tests Package

Tests can be run with pytest from the repository root:

   pytest tburn_tokens/tests/ -v

Fixtures shared by all tests are defined in conftest.py.
"""
