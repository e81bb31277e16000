"""Quaternion, vector and 4x4 matrix helpers."""
