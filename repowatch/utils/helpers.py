"""Utility helper functions"""

import socket
import platform


def get_hostname():
    """Get system hostname"""
    try:
        return socket.gethostname()
    except Exception:
        return platform.node() or "unknown"


def safe_divide(a, b, default=0.0):
    """Safely divide two numbers, returning default if division by zero"""
    try:
        if b == 0:
            return default
        return a / b
    except (TypeError, ZeroDivisionError):
        return default


def format_duration(seconds):
    """Format a duration in seconds as a short human-readable string"""
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"
