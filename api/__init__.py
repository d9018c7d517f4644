"""
Relay API for the Face ID capture client.

A FastAPI service exposing POST /api/enroll and POST /api/authenticate. Each
call is forwarded to the verification backend; upstream failures come back
as a JSON error envelope.
"""
