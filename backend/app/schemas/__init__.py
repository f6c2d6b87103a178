"""Pydantic Schemas: request/response validation for API endpoints and provider payloads.

Invariants:
    - Schemas validate at system boundaries (user input, provider rows, change payloads)
    - Domain types from core/ are what schemas convert into

Design Decisions:
    - Separate from models: schemas are wire contracts, models are persistence
"""
