"""
Test suite for the Site Monitor application.

This package contains:
- unit/: Classifier, filtering, sweep and PageSpeed client tests
- integration/: API, HTML view and CLI tests against the test database
"""
