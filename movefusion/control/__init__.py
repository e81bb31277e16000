"""Tracker contract and pose fusion."""
