"""Persistence infrastructure for finsync."""
