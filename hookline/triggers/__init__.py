"""Workflow triggers."""

from hookline.triggers.webhook import ExternalSourceDispatcher, TriggerRegistrationReconciler

__all__ = ["ExternalSourceDispatcher", "TriggerRegistrationReconciler"]
