"""Pydantic request payloads and read models."""
