#!/usr/bin/env python3
"""
Test runner for the print-space layout engine.

Groups the test modules into suites and hands them to pytest.
"""

import argparse
import importlib.util
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent

# Suites that go through the Flask app or render real rasters
INTEGRATION_TESTS = ['tests/test_routes.py', 'tests/test_export.py']

SUITES = {
    'geometry': ['tests/test_units.py', 'tests/test_fitting.py', 'tests/test_layouts.py'],
    'products': ['tests/test_provider.py', 'tests/test_options.py', 'tests/test_config.py'],
    'editing': ['tests/test_editor.py', 'tests/test_preflight.py', 'tests/test_drafts.py'],
    'rendering': ['tests/test_assets.py', 'tests/test_borders.py', 'tests/test_export.py'],
    'api': ['tests/test_routes.py', 'tests/test_errors.py'],
}

# import name -> distribution name
REQUIRED_MODULES = {
    'pytest': 'pytest',
    'pytest_cov': 'pytest-cov',
    'flask': 'Flask',
    'loguru': 'loguru',
    'pydantic': 'pydantic',
    'yaml': 'PyYAML',
    'PIL': 'Pillow',
    'numpy': 'numpy',
    'dotenv': 'python-dotenv',
    'cairosvg': 'cairosvg',
}


def pytest_command(targets, verbose=False, coverage=False):
    cmd = [sys.executable, '-m', 'pytest', *targets]
    if verbose:
        cmd.append('-v')
    if coverage:
        cmd += ['--cov=printspace', '--cov-report=term', '--cov-report=html']
    return cmd


def run(targets, label, verbose=False, coverage=False):
    print(f"🧪 {label}")
    return subprocess.run(pytest_command(targets, verbose, coverage), cwd=PROJECT_ROOT).returncode


def missing_packages():
    return [package for module, package in REQUIRED_MODULES.items()
            if importlib.util.find_spec(module) is None]


def main():
    parser = argparse.ArgumentParser(
        description="Test runner for the print-space layout engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage:
  python run_tests.py                     # everything
  python run_tests.py --unit              # skip the Flask and render suites
  python run_tests.py --suite editing     # one group of modules
  python run_tests.py --test tests/test_layouts.py::TestLayoutLookup
        """
    )
    parser.add_argument('--unit', action='store_true', help='Run only unit tests')
    parser.add_argument('--integration', action='store_true', help='Run only integration tests')
    parser.add_argument('--suite', choices=sorted(SUITES), help='Run one named suite')
    parser.add_argument('--test', help='Run one test file or node id')
    parser.add_argument('--coverage', action='store_true', help='Generate coverage report')
    parser.add_argument('--verbose', '-v', action='store_true')
    parser.add_argument('--check-deps', action='store_true', help='Only check installed packages')
    args = parser.parse_args()

    missing = missing_packages()
    if missing:
        print("❌ Missing packages: " + ', '.join(missing))
        print(f"   pip install {' '.join(missing)}")
    elif args.check_deps:
        print("✅ All test dependencies are installed")
    if args.check_deps:
        return 1 if missing else 0

    if args.test:
        return run([args.test], f"Running {args.test}", args.verbose)
    if args.suite:
        return run(SUITES[args.suite], f"Running the {args.suite} suite", args.verbose, args.coverage)
    if args.unit:
        ignores = [f'--ignore={path}' for path in INTEGRATION_TESTS]
        return run(['tests/', *ignores], "Running unit tests", args.verbose, args.coverage)
    if args.integration:
        return run(INTEGRATION_TESTS, "Running integration tests", args.verbose)
    return run(['tests/'], "Running all tests", args.verbose, args.coverage)


if __name__ == '__main__':
    sys.exit(main())
