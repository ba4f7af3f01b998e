"""Identity bounded context.

SQL-backed role and user stores for an external identity manager.
"""
