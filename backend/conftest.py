# backend/conftest.py
"""
Root pytest configuration.

Runs before any ``tripbooking`` import so settings are built for tests:
an in-memory database, no real payment or email providers, and a fixed
signing key.
"""
import os

os.environ.setdefault("CI", "1")  # skip backend/.env
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("IS_TESTING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-tripbooking-tests")
os.environ.pop("STRIPE_SECRET_KEY", None)
os.environ.pop("RESEND_API_KEY", None)
