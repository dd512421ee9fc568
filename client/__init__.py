"""client/ -- HTTP client for the Budget Tracker API.

session.py owns the session boundary: where the bearer token lives, how it
is attached to outgoing requests and what happens on a 401.
api.py is the thin typed wrapper the CLI (and any other consumer) calls.

Layer rule: client/ imports only stdlib, third-party libraries and core/.
It talks to the server over HTTP only and never imports api/, auth/ or budget/.
"""
