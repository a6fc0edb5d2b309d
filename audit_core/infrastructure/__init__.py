"""Adaptadores de infraestructura (store en memoria, PostgreSQL)."""
