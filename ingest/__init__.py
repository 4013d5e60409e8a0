"""
Ingest package: commit sources (GitHub, demo, static).
"""
