"""
Pytest fixtures for the UpdateKit test suite.

- http_mocking: HTTPX MockTransport client and response builders
- resolvers: in-memory package resolvers that record every call
"""
