"""Household registry: users, people, and reference data over a document store."""
