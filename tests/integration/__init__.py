"""
Integration test package for the Site Monitor.

Tests use the Flask test client and demonstrate:
- CRUD operation testing
- Input validation testing
- Error handling testing
- Sweep and filter behaviour through the HTTP surface
"""
