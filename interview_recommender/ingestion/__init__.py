"""
Ingestion layer — catalog import into the relational store.

Submodules:
  catalog_json  — JSON parser + writer for users, interviews, interactions
"""
