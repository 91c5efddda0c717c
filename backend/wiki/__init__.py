"""Minimal wiki backed by a relational page table.

The package exposes a FastAPI application factory (`wiki.main.create_app`)
together with the settings, database, model and repository modules it is
assembled from.
"""
