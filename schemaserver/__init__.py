"""
HTTP service around schemaai: SQL storage, admin and content APIs, and the
background drain worker.
"""
