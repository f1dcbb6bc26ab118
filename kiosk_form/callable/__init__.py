"""Callable protocol for kiosk-form."""

from kiosk_form.callable.execute import OPERATIONS, execute
from kiosk_form.callable.result import CallableResult

__all__ = ["CallableResult", "OPERATIONS", "execute"]
