"""Exceptions for the aiomccontrol library."""

from __future__ import annotations


class McControlError(Exception):
    """Base exception for all aiomccontrol errors."""


class McConnectionError(McControlError):
    """Transport not open, connect failure, or socket closed mid-call."""


class McProtocolError(McControlError):
    """Malformed envelope, status payload, or result shape."""


class McApplicationError(McControlError):
    """The remote side answered with an explicit error status."""
