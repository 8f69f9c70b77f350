#!/usr/bin/env python3

import os
import sys
import unittest


def _extract_test_cases(test):
    for t in test:
        if isinstance(t, unittest.TestSuite):
            yield from _extract_test_cases(t)
        else:
            yield t


def run_tests(test_name=None, verbosity=2):
    """Runs every *_unittest.py module under bulked/, optionally filtered by name."""
    current_dir = os.path.dirname(os.path.abspath(__file__))
    start_dir = os.path.join(current_dir, "bulked")

    loader = unittest.TestLoader()
    discovered = loader.discover(start_dir, pattern="*_unittest.py", top_level_dir=current_dir)

    if test_name:
        suite = unittest.TestSuite(
            case for case in _extract_test_cases(discovered)
            if test_name.lower() in str(case).lower()
        )
        if suite.countTestCases() == 0:
            print(f"No tests match {test_name!r}", file=sys.stderr)
            return 1
    else:
        suite = discovered

    result = unittest.TextTestRunner(verbosity=verbosity).run(suite)
    return 0 if result.wasSuccessful() else 1


if __name__ == "__main__":
    test_name = sys.argv[1] if len(sys.argv) > 1 else None
    sys.exit(run_tests(test_name))
