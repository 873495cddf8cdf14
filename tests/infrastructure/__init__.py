"""Shared fakes and helpers for the http-to-ws test suite."""
