"""
Root conftest.py - Session-scoped setup shared across all tests.

Puts the src/ layout and the tests directory on the path so the package and
test helpers import without installation.
"""

from pathlib import Path
import sys

CODE_DIR = Path(__file__).parent.parent.resolve()
SRC_DIR = CODE_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))
TESTS_DIR = Path(__file__).parent.resolve()
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))
