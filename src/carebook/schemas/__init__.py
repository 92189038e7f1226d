"""Pydantic schemas for booking request/response validation."""
