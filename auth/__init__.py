"""auth/ -- Token issuing and validation for the Budget Tracker API.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/, budget/, or client/.
api/ imports from auth/, not the other way around.
"""
