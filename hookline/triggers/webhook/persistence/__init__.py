"""Persistence layer for workflow trigger registration."""

from hookline.triggers.webhook.persistence.models import (
    ConnectionModel,
    EventRuleModel,
    ExternalSourceModel,
    WorkflowModel,
)
from hookline.triggers.webhook.persistence.protocols import (
    ConnectionRepository,
    EventRuleRepository,
    ExternalSourceRepository,
    WorkflowRepository,
)
from hookline.triggers.webhook.persistence.repositories import (
    InMemoryConnectionRepository,
    InMemoryEventRuleRepository,
    InMemoryExternalSourceRepository,
    InMemoryWorkflowRepository,
    SqlConnectionRepository,
    SqlEventRuleRepository,
    SqlExternalSourceRepository,
    SqlWorkflowRepository,
)

__all__ = [
    "ConnectionModel",
    "ConnectionRepository",
    "EventRuleModel",
    "EventRuleRepository",
    "ExternalSourceModel",
    "ExternalSourceRepository",
    "InMemoryConnectionRepository",
    "InMemoryEventRuleRepository",
    "InMemoryExternalSourceRepository",
    "InMemoryWorkflowRepository",
    "SqlConnectionRepository",
    "SqlEventRuleRepository",
    "SqlExternalSourceRepository",
    "SqlWorkflowRepository",
    "WorkflowModel",
    "WorkflowRepository",
]
