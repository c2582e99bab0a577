"""Shared middleware for cross-cutting concerns.

Holds the tenant context value object that every bounded context receives
once the caller's tenant has been resolved from trusted authentication state.
"""
