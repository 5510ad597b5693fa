"""
Test suite for the Clinic Scheduling Service.

Contains unit tests for the token, authorization and booking core and
integration tests for the HTTP API.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
