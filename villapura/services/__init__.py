"""Availability, booking and payment services."""
