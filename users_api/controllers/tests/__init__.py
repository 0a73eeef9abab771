"""Tests for :mod:`users_api.controllers`."""
