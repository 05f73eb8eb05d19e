"""audit/ -- Append-only audit log of POST /auth attempts.

Layer rule: audit/ imports only stdlib, third-party libraries, core/, and kv/.
"""
