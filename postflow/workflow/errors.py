"""Workflow error taxonomy."""


class WorkflowError(Exception):
    """Base class for workflow errors."""


class ExtractionFailure(WorkflowError):
    """An extractor could not produce content for a link. Per-task and non-fatal."""

    def __init__(self, link: str, reason: str):
        super().__init__(f"{link}: {reason}")
        self.link = link
        self.reason = reason


class GenerationFailure(WorkflowError):
    """The language-model collaborator failed or timed out."""


class InvalidResumeState(WorkflowError):
    """Resume/cancel/commit attempted on an instance that is not in the required state."""

    def __init__(self, instance_id: str, status: str | None, message: str | None = None):
        super().__init__(message or f"instance {instance_id} is {status or 'unknown'}")
        self.instance_id = instance_id
        self.status = status


class UnknownInstance(InvalidResumeState):
    def __init__(self, instance_id: str):
        super().__init__(instance_id, None, f"instance {instance_id} not found")


class InvalidDecision(WorkflowError):
    """Decision payload cannot be applied (e.g. approving an empty post)."""


class PersistenceFailure(WorkflowError):
    """Instance state could not be persisted at a suspension or terminal boundary."""


class PublishError(WorkflowError):
    """A platform client failed to publish."""

    def __init__(self, platform: str, detail: str):
        super().__init__(f"{platform}: {detail}")
        self.platform = platform
        self.detail = detail
