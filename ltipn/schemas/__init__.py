"""Schémas Pydantic / Pydantic schemas."""
