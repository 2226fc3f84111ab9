"""Venue booking backend: slot availability, booking lifecycle and payment verification."""

__version__ = "0.1.0"
