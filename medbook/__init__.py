"""
MedBook

A FastAPI-based healthcare appointment booking service: patients browse
doctors and book time slots, doctors publish daily availability and review
their bookings.
"""

__version__ = "1.0.0"
