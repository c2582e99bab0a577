"""Shared Kernel module.

This module contains foundational components that are explicitly shared across
bounded contexts: the resolved tenant context, the observation context used
by domain probes, and authentication primitives.

Following Domain-Driven Design principles, the Shared Kernel is a small,
carefully managed set of components that contexts agree to depend on.
"""
