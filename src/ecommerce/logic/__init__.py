"""
Business logic: the generic CRUD service and the user, password and file workflows.
"""
