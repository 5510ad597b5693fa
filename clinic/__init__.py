"""
Clinic Scheduling Service

A FastAPI backend for clinic appointments: role-scoped session tokens for
administrators, doctors and patients, and a booking engine that turns each
doctor's daily slot template into a conflict-free schedule.
"""

__version__ = "1.0.0"
