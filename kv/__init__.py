"""kv/ -- Ordered key-value persistence shared by the credential and audit stores.

Layer rule: kv/ imports only stdlib and third-party libraries.
"""
