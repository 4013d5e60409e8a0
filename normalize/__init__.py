"""
Normalize package: domain models and raw-payload conversion helpers.
"""
