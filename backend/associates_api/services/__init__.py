"""
Associates Backend — Services Layer
====================================

What:  Business logic between the routes (HTTP) and the database / media host.
How:   Services receive an AsyncSession or a client per call and return domain
       values; routes turn those into responses.

Service Inventory:
    - passwords:           bcrypt hashing and constant-shape verification
    - session_tokens:      signed, expiring session tokens (itsdangerous)
    - credential_service:  credential rows (lookup, create, rotate, bootstrap)
    - auth_gate:           login / authenticate / logout contract
    - document_service:    CRUD for every content resource
    - media_service:       signed upload/destroy calls to the media host
"""
