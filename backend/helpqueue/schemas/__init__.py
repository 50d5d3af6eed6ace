"""Pydantic Schemas — validation for operation inputs and hydrated read models.

Invariants:
    - Operation inputs forbid extra fields and use strict types
    - Read models are what events and API responses carry
"""
