#!/usr/bin/env python3
"""
Main test runner for the codefix tests.

Author: xwest
"""

import sys
import os
import unittest

# Add the project root to the Python path
project_root = os.path.abspath(os.path.dirname(__file__))
sys.path.insert(0, project_root)


def run_all_tests():
    """Check the shipped grammars, then run every test module under tests/."""

    print("codefix test suite")
    print("=" * 60)

    try:
        from codefix.parser.grammar import get_grammar
        from codefix.analyzer.errors import GrammarError
    except ImportError as e:
        print(f"Failed to import codefix modules: {e}")
        return False

    for pico8 in (True, False):
        try:
            grammar = get_grammar(pico8)
        except GrammarError as e:
            print(f"Grammar self-check FAILED: {e}")
            return False
        print(f"Grammar {grammar.name}: {len(grammar.rules)} rules, self-check passed")
    print()

    loader = unittest.TestLoader()
    suite = loader.discover(os.path.join(project_root, "tests"), pattern="test_*.py")
    result = unittest.TextTestRunner(verbosity=2).run(suite)

    print()
    if result.wasSuccessful():
        print(f"All {result.testsRun} tests PASSED")
    else:
        print(f"{len(result.failures)} failures, {len(result.errors)} errors "
              f"in {result.testsRun} tests")
    return result.wasSuccessful()


if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
