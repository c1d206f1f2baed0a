# === NAVMAP v1 ===
# {
#   "module": "UpdateKit.concurrency.__init__",
#   "purpose": "Concurrency helpers shared across UpdateKit components.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Concurrency helpers shared across UpdateKit components.

Exposes :func:`create_executor`, which maps an execution policy onto a pool
(worker threads, or inline for a single call), and :func:`fan_out`, the "run everything,
wait for everything, then decide" helper used wherever several independent
package resolvers are queried at once.
"""

from .executors import create_executor
from .fanout import FanOutResult, Outcome, fan_out

__all__ = ["create_executor", "fan_out", "FanOutResult", "Outcome"]
