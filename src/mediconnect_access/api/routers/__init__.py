"""
mediconnect_access.api.routers

HTTP routers (health, auth, access control, dev tokens).
"""
