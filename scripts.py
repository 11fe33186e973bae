#!/usr/bin/env python3
"""Development scripts for the Campus Events engine."""

import subprocess
import sys


def start():
    """Start the development server."""
    subprocess.run([
        "uvicorn",
        "campus_events.main:app",
        "--host", "0.0.0.0",
        "--port", "3000",
        "--reload"
    ])


def worker():
    """Start a Celery worker with the embedded beat scheduler for sweeps."""
    subprocess.run([
        "celery", "-A", "campus_events.tasks.celery_app", "worker", "--beat", "-Q", "sweeps", "--loglevel=info"
    ])


def test():
    """Run the test suite."""
    subprocess.run(["pytest", "tests/"])


def lint():
    """Run linting and type checking."""
    subprocess.run(["black", "campus_events/", "tests/"])
    subprocess.run(["mypy", "campus_events/"])


def format_code():
    """Format code with black."""
    subprocess.run(["black", "campus_events/", "tests/"])


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts.py <command>")
        print("Commands: start, worker, test, lint, format-code")
        sys.exit(1)

    command = sys.argv[1].replace("-", "_")
    if hasattr(sys.modules[__name__], command):
        getattr(sys.modules[__name__], command)()
    else:
        print(f"Unknown command: {sys.argv[1]}")
        sys.exit(1)
