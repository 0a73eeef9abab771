"""Tests for :mod:`users_api.services`."""
