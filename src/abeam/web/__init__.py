"""Web API: status endpoints and middleware."""
