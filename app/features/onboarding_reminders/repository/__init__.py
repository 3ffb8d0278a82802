"""
Repository layer for onboarding reminders.

Module-level async functions over the shared psycopg pool, imported by the
service layer as ``session_repository`` and ``reminder_repository``.
"""
