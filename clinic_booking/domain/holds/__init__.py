"""
Holds Domain

Doctor-initiated requests to block slots, decided by an administrator.

- schemas.py     # Hold request / decision schemas
- repository.py  # Hold request queries
- service.py     # Create, approve, reject and purge
- router.py      # /holds endpoints
"""
