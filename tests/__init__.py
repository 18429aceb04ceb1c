"""
Test suite for the MediCare Directory API.

Contains service-level and HTTP-level tests for access control, doctor
verification, chambers and the appointment lifecycle.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
