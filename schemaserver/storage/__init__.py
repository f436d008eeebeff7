"""
Database-backed storage for the schema service.
"""
