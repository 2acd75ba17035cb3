"""
Hospital Booking API

A FastAPI-based backend for managing hospital and vaccination-center records
and appointment bookings, with authentication and role-based access control.
"""

__version__ = "1.0.0"
