"""
UI test package for the Site Monitor.

This package contains Playwright-based browser tests and demonstrates:
- Page Object Model (POM) pattern
- Locator strategies using data-testid attributes
- User flow testing against an in-process live server
"""
