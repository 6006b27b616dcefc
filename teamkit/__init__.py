"""
teamkit

Multi-tenant team management: teams, memberships and invitations, a
role-based permission matrix, and team-scoped data access.
"""

__version__ = "1.0.0"
