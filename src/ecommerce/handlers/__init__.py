"""
AWS Lambda handlers for the e-commerce backend.

- users_handler: registration, authentication, password reset and user CRUD
- files_handler: encrypted file uploads

Shared plumbing (observability, errors, startup, resolver helpers) lives in
``handlers.utils``; environment configuration in ``handlers.models``.
"""
