"""Tubely media ingestion service."""
