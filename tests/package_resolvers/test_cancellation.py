# === NAVMAP v1 ===
# {
#   "module": "tests.package_resolvers.test_cancellation",
#   "purpose": "Tests for the cancellation token used by package resolvers.",
#   "sections": [
#     {"id": "tests", "name": "Test Cases", "anchor": "TST", "kind": "tests"}
#   ]
# }
# === /NAVMAP ===

"""Tests for the cancellation token used by package resolvers."""

import threading

import pytest

from UpdateKit.PackageResolvers.cancellation import CancellationToken
from UpdateKit.PackageResolvers.errors import OperationCancelledError


def test_raise_if_cancelled() -> None:
    token = CancellationToken()
    token.raise_if_cancelled()

    token.cancel()
    with pytest.raises(OperationCancelledError, match="download was cancelled"):
        token.raise_if_cancelled("download")

    token.reset()
    token.raise_if_cancelled()
    assert repr(token) == "CancellationToken(cancelled=False)"


def test_cancel_is_visible_across_threads() -> None:
    token = CancellationToken()
    observed = threading.Event()

    def _worker() -> None:
        while not token.is_cancelled():
            pass
        observed.set()

    thread = threading.Thread(target=_worker)
    thread.start()
    token.cancel()
    thread.join(timeout=5)

    assert observed.is_set()
