"""TOEFL-style reading quiz generation, grading and history."""

__version__ = "0.1.0"
