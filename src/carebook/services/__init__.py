"""Booking domain services."""
