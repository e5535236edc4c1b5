"""Service layer for the Task Tracker backend.

Services:
- users.py: User identity lookups and writes
- auth.py: Password hashing, login, registration and external login
- sessions.py: Server-side login sessions and signed session tokens
- tasks.py: Ownership-scoped task CRUD and reordering
- oauth.py: Google OAuth client
"""
