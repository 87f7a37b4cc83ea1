"""Authentication and authorization.

Two account kinds, one token format:
1. Students → email/password → access/refresh JWT pair (role "user")
2. Admins → email/password on /api/admin/login → same pair, role from
   the admin record ("admin" or "super_admin")

Both resolve to a CurrentIdentity that handlers receive explicitly.
"""
