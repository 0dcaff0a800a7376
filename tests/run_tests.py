#!/usr/bin/env python3
"""
Test runner for the parkflow test suites.

    python tests/run_tests.py                      # everything
    python tests/run_tests.py unit                 # one suite
    python tests/run_tests.py unit.test_matcher    # one module
"""

import unittest
import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent

# Make the package importable without installing it
sys.path.insert(0, str(ROOT))


def run_all_tests(suite_dir: str = ""):
    """Discover and run test_*.py under tests/ (or one of its suites)"""
    test_loader = unittest.TestLoader()
    start_dir = Path(__file__).parent / suite_dir
    test_suite = test_loader.discover(
        str(start_dir), pattern='test_*.py', top_level_dir=str(ROOT)
    )
    test_runner = unittest.TextTestRunner(verbosity=2)
    return test_runner.run(test_suite)


def run_specific_test(test_name: str):
    """Run a specific test module or test case, e.g. unit.test_matcher.TestSpotMatcher"""
    test_loader = unittest.TestLoader()
    test_suite = test_loader.loadTestsFromName(f'tests.{test_name}')
    test_runner = unittest.TextTestRunner(verbosity=2)
    return test_runner.run(test_suite)


if __name__ == "__main__":
    if len(sys.argv) > 1:
        target = sys.argv[1]
        if target in ("unit", "integration"):
            result = run_all_tests(target)
        else:
            result = run_specific_test(target)
    else:
        result = run_all_tests()

    sys.exit(0 if result.wasSuccessful() else 1)
