"""Stores and services backing the matching core."""
