"""
Article board backend.

Users sign in with email/password or Google, browse and submit short articles,
and a super-admin/admin role moderates users and content.
"""
