"""Authentication and authorization.

Learn: One authentication path, Google sign-in, producing a
server-side login session carried by an HttpOnly cookie.
- google.py: the OAuth handshake with the identity provider
- state.py: signed `state` tokens against login CSRF
- dependencies.py: session cookie → CurrentUser (the authorization gate)
"""
