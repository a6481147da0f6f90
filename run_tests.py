#!/usr/bin/env python3
"""
Test runner shortcuts for the breakout scanner.

Usage: python run_tests.py <command>
"""

import shutil
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).parent
PYTEST = [sys.executable, "-m", "pytest"]
COVERAGE = ["--cov=src/breakout_scanner", "--cov-report=term-missing"]

COMMANDS = {
    "all": ("Run all tests with coverage", ["tests/", *COVERAGE, "--cov-report=html", "-v"]),
    "unit": ("Run unit tests only", ["tests/", "-m", "not integration", "-v"]),
    "core": ("Run config, clock, event and app tests", ["tests/test_core/", "-v"]),
    "services": ("Run request, acquisition and tracking tests", ["tests/test_services/", "-v"]),
    "analysis": (
        "Run breakout analysis and entry strategy tests",
        [
            "tests/test_services/test_analyzer.py",
            "tests/test_services/test_entry_strategy.py",
            "-v",
        ],
    ),
    "tracking": ("Run watchlist tracking tests", ["tests/test_services/test_tracker.py", "-v"]),
    "fast": ("Run tests without coverage, stop on first failure", ["tests/", "-x", "-q"]),
    "coverage": ("Generate coverage report", ["tests/", *COVERAGE, "--cov-report=html"]),
}

ARTIFACTS = [".coverage", "htmlcov", ".pytest_cache"]


def run_pytest(description, args):
    print(f"\n🧪 {description}")
    print("=" * 50)
    cmd = PYTEST + args
    print(f"Running: {' '.join(cmd)}\n")
    return subprocess.run(cmd, cwd=ROOT).returncode == 0


def clean():
    print("\n🧹 Cleaning test artifacts...")
    for name in ARTIFACTS:
        path = ROOT / name
        if path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()
    for cache_dir in ROOT.rglob("__pycache__"):
        shutil.rmtree(cache_dir, ignore_errors=True)
    print("✅ Test artifacts cleaned!")


def usage():
    print(__doc__.strip())
    print("\nAvailable commands:")
    for name, (description, _) in COMMANDS.items():
        print(f"  {name:<10} - {description}")
    print(f"  {'clean':<10} - Remove coverage and cache artifacts")


def main():
    if len(sys.argv) < 2:
        usage()
        return

    command = sys.argv[1].lower()
    if command == "clean":
        clean()
        return
    if command not in COMMANDS:
        print(f"❌ Unknown command: {command}")
        usage()
        sys.exit(2)

    description, args = COMMANDS[command]
    if run_pytest(description, args + sys.argv[2:]):
        print(f"\n✅ {command.title()} tests completed successfully!")
        if command == "coverage":
            print("   HTML report: htmlcov/index.html")
    else:
        print(f"\n❌ {command.title()} tests failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
