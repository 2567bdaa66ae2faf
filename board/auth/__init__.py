"""
Authentication for the article board API.

Design goals:
- Stateless bearer tokens (JWT); no server-side session store.
- Every authenticated request is re-checked against the `users` collection,
  so role changes and account deletion take effect immediately.
- Email/password and Google sign-in share one account per normalized email.
"""
