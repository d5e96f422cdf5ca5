"""
Root conftest.py for pytest configuration

Registers the markers used across the suite.
"""
import os

# Settings are read on first import; keep test runs quiet and isolated
os.environ.setdefault("REPORTRUNNER_ENVIRONMENT", "test")
os.environ.setdefault("REPORTRUNNER_LOG_FORMAT", "text")
os.environ.setdefault("REPORTRUNNER_LOG_LEVEL", "WARNING")


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external services")
    config.addinivalue_line("markers", "slow: tests that wait on timeouts")
