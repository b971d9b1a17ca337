"""taskkeep — per-user task tracking backend.

Google sign-in, server-side login sessions, and task CRUD where every
row is scoped to the user who owns it.
"""

__version__ = "0.1.0"
