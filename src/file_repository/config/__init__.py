"""
Configuration management for the file repository.

Contains the Pydantic settings object and its cached accessor.
"""
