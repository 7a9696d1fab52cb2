"""Pydantic Schemas — request/response models for the HTTP surface.

Invariants:
    - Field names are camelCase on the wire (alias_generator), snake_case in Python
    - Addresses checksummed by validators before reaching a route handler
    - uint256 quantities (tokenId, price) serialized as decimal strings
"""
