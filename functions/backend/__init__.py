"""
Backend package for the restaurants API.

This package provides a FastAPI application over the same Firestore data
and restaurant operations used by the Firebase callables in main.py, with
pluggable image storage.
"""
