"""Pytest configuration and shared fixtures."""

from hypothesis import settings

# Create a profile named "no_deadline" with deadline disabled.
#
# The exact decay root makes the first call for a join epoch slower than the rest.
settings.register_profile("no_deadline", deadline=None)
settings.load_profile("no_deadline")
