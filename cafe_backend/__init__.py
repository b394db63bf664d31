"""
Backend package for the cafe site.

This package provides a FastAPI application for the coffee-tasting
registration page and the admin back-office, with table-store and object
storage abstractions so the hosted backend can be swapped for in-memory
clients during development and tests.
"""
