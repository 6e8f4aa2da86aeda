"""
Background maintenance.

Expiry is enforced inline on every access; the sweeper only reclaims storage
held by pastes nobody has touched since they expired.
"""

from .expiry_worker import start_expiry_worker, sweep_once

__all__ = ["start_expiry_worker", "sweep_once"]
