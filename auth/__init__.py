"""auth/ -- Credential hashing and the credential store.

Layer rule: auth/ imports only stdlib, third-party libraries, and kv/.
It does NOT import from api/, web/, or audit/.
api/ and web/ import from auth/, not the other way around.
"""
