"""Adapters layer for Comment-Sieve.

This module contains adapters that interface with external systems. Adapters
implement Port interfaces defined in the domain layer and deal in storage rows,
never in pydantic models.
"""
