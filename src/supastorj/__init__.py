"""Operator CLI for provisioning and supervising a self-hosted storage stack."""

__version__ = "0.1.0"
