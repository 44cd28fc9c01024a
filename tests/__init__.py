"""
gaitkin Test Suite

Test Organization:
- tests/unit/: Isolated component tests
- tests/integration/: Analysis scenarios, full pipeline and CLI runs

Shared synthetic recordings live in tests/conftest.py.
"""

__version__ = "1.0.0"
