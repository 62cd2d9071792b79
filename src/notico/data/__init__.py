"""Authoritative store data layer."""
