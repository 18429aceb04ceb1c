"""
MediCare Directory API

A FastAPI service for a healthcare directory: role-gated access control,
doctor verification, practice chambers and appointment booking.
"""

__version__ = "1.0.0"
