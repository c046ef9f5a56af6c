"""Authentication.

Learn: Token issuance (register/login) belongs to the account service.
This package only verifies bearer JWTs and resolves them to a user id,
for both HTTP routes and WebSocket handshakes.
"""
